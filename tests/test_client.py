import pytest

from client import ApiError, AuthContext, ShopClient

from conftest import SHIPPING, png_bytes


@pytest.fixture
def auth():
    return AuthContext()


@pytest.fixture
def shop(client, auth):
    return ShopClient(client, auth)


def test_auth_context_lifecycle():
    auth = AuthContext()
    assert not auth.is_authenticated
    assert auth.headers() == {}

    auth.sign_in("tok", {"id": "1"})
    assert auth.is_authenticated
    assert auth.headers() == {"Authorization": "Bearer tok"}

    auth.update_user({"id": "1", "full_name": "New"})
    assert auth.token == "tok"
    assert auth.user["full_name"] == "New"

    auth.sign_out()
    assert auth.token is None and auth.user is None


def test_register_signs_in(shop, auth):
    user = shop.register("Dilani Fernando", "dilani@example.com", "greenthumb")
    assert auth.is_authenticated
    assert auth.user == user


def test_profile_edit_updates_context(shop, auth):
    shop.register("Dilani Fernando", "dilani@example.com", "greenthumb")
    shop.edit_profile(contact_number="0701112233")
    assert auth.user["contact_number"] == "0701112233"


def test_delete_account_signs_out(shop, auth):
    shop.register("Dilani Fernando", "dilani@example.com", "greenthumb")
    shop.delete_account()
    assert not auth.is_authenticated
    with pytest.raises(ApiError) as exc:
        shop.login("dilani@example.com", "greenthumb")
    assert exc.value.status_code == 401


def test_two_contexts_stay_separate(client):
    first = ShopClient(client, AuthContext())
    second = ShopClient(client, AuthContext())
    first.register("One", "one@example.com", "pw-one")
    second.register("Two", "two@example.com", "pw-two")

    assert first.auth.user["email"] == "one@example.com"
    assert second.auth.user["email"] == "two@example.com"


def test_api_error_carries_message(shop):
    with pytest.raises(ApiError) as exc:
        shop.checkout()
    assert exc.value.status_code == 401
    assert exc.value.message == "User not authenticated"


def test_place_order(shop, make_product):
    shop.register("Dilani Fernando", "dilani@example.com", "greenthumb")
    pid = make_product(name="Seed Kit A", price=100.0, quantity=5)

    order_id = shop.place_order(
        [{"product_id": pid, "quantity": 2}, {"product_id": pid, "quantity": 0}],
        SHIPPING,
        {"payment_method": "cash_on_delivery"},
    )

    orders = shop.my_orders()
    assert [o["id"] for o in orders] == [order_id]
    assert orders[0]["total_amount"] == 200.0
    with pytest.raises(ApiError) as exc:
        shop.checkout()
    assert exc.value.status_code == 400


def test_place_order_stops_at_failing_step(shop, make_product):
    shop.register("Dilani Fernando", "dilani@example.com", "greenthumb")
    pid = make_product(quantity=5)

    with pytest.raises(ApiError) as exc:
        shop.place_order([{"product_id": pid, "quantity": 1}], {**SHIPPING, "city": ""},
                         {"payment_method": "cash_on_delivery"})

    assert exc.value.status_code == 400
    # synced but not confirmed
    assert shop.checkout()["total_amount"] == 100.0
    assert shop.my_orders() == []


def test_place_order_with_empty_cart(shop):
    with pytest.raises(ApiError):
        shop.place_order([], SHIPPING, {"payment_method": "cash_on_delivery"})


def test_catalog_and_videos(shop):
    product = shop.add_product(("kit.png", png_bytes()), name="Compost Kit", price=990, description="Starter kit",
                               quantity=3, category="Compost Kits")
    assert shop.get_product(product["id"])["name"] == "Compost Kit"
    assert shop.list_products(category="Compost Kits")["total"] == 1
    shop.delete_product(product["id"])
    with pytest.raises(ApiError) as exc:
        shop.get_product(product["id"])
    assert exc.value.status_code == 404

    video = shop.add_video("Mulching", "Why mulch matters", ("mulch.mp4", b"fake-video"))
    assert shop.list_videos() == [video]
    shop.delete_video(video["id"])
    assert shop.list_videos() == []


def test_add_and_remove_from_cart(shop, make_product):
    shop.register("Dilani Fernando", "dilani@example.com", "greenthumb")
    pid = make_product()
    assert shop.add_to_cart(pid, 2)[0]["quantity"] == 2
    assert shop.remove_from_cart(pid) == []
