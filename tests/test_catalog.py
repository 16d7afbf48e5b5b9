import io
import logging
import os

import pytest
from bson import ObjectId
from PIL import Image
from pydantic import ValidationError
from pymongo.errors import OperationFailure

import catalog
from errors import InternalError, InvalidRequest, NotFound
from schemas import ProductFilter

from conftest import png_bytes

FIELDS = {
    "name": "Okra Seeds",
    "price": "120.50",
    "description": "Open pollinated okra",
    "quantity": "40",
    "category": "Seeds",
    "plant_type": "Vegetables",
    "sunlight": "Full Sun",
    "space": None,
    "growth": "Fast Growing",
}


def create(db, fields=None, data=None, name="okra.png"):
    image = io.BytesIO(png_bytes() if data is None else data)
    return catalog.create_product(db, fields or FIELDS, image, name)


def test_create_product_compresses_image(db, uploads):
    product = create(db)

    assert product["name"] == "Okra Seeds"
    assert product["price"] == 120.5
    assert product["quantity"] == 40
    assert product["space"] == ""
    assert product["image"].startswith("/uploads/compressed-")
    assert product["image"].endswith(".jpg")

    files = os.listdir(uploads)
    assert files == [os.path.basename(product["image"])]
    with Image.open(uploads / files[0]) as img:
        assert img.format == "JPEG"
    assert db["product"].count_documents({}) == 1


def test_create_product_shrinks_large_images(db, uploads, monkeypatch):
    monkeypatch.setenv("IMAGE_MAX_DIMENSION", "100")
    product = create(db, data=png_bytes(size=(400, 200)))

    with Image.open(uploads / os.path.basename(product["image"])) as img:
        assert img.size == (100, 50)


def test_create_product_requires_image(db):
    with pytest.raises(InvalidRequest):
        catalog.create_product(db, FIELDS, None, None)


@pytest.mark.parametrize("field,value", [
    ("price", "-1"),
    ("price", "cheap"),
    ("price", "inf"),
    ("price", "-inf"),
    ("price", "nan"),
    ("price", "Infinity"),
    ("quantity", "-3"),
    ("quantity", "2.5"),
    ("category", "Fertiliser"),
    ("plant_type", "Cactus"),
    ("sunlight", "Moonlight"),
    ("name", "   "),
    ("description", None),
])
def test_create_product_rejects_bad_fields(db, uploads, field, value):
    with pytest.raises(InvalidRequest):
        create(db, {**FIELDS, field: value})
    assert db["product"].count_documents({}) == 0
    assert not uploads.exists() or os.listdir(uploads) == []


def test_create_product_with_unreadable_image(db, uploads):
    with pytest.raises(InternalError) as exc:
        create(db, data=b"definitely not an image", name="bad.png")

    assert exc.value.message == "Failed to compress image"
    assert db["product"].count_documents({}) == 0
    assert os.listdir(uploads) == []


def test_failed_insert_removes_compressed_image(db, uploads, monkeypatch):
    def failing_insert(*args, **kwargs):
        raise OperationFailure("disk full")

    monkeypatch.setattr(catalog, "create_document", failing_insert)

    with pytest.raises(InternalError):
        create(db)
    assert os.listdir(uploads) == []


def test_list_products_projection(db, make_product):
    pid = make_product(name="Spade", category="Tools", price=15.0)

    listing = catalog.list_products(db)

    assert listing["total"] == 1
    assert listing["products"][0] == {
        "id": pid,
        "name": "Spade",
        "price": 15.0,
        "description": "Spade for home gardens",
        "image": "/uploads/compressed-x.jpg",
        "quantity": 5,
        "category": "Tools",
        "plant_type": "",
        "sunlight": "",
        "space": "",
        "growth": "",
    }


def test_list_products_skips_corrupt_ids(db, make_product, caplog):
    make_product()
    db["product"].insert_one({"_id": "legacy-row", "name": "Broken", "price": 1.0})

    with caplog.at_level(logging.WARNING, logger="catalog"):
        listing = catalog.list_products(db)

    assert [p["name"] for p in listing["products"]] == ["Tomato Seeds"]
    assert "Filtered out 1 products" in caplog.text


def test_list_products_filters(db, make_product):
    make_product(name="Tomato Seeds", price=100.0, plant_type="Vegetables", sunlight="Full Sun")
    make_product(name="Basil Seeds", price=60.0, plant_type="Herbs", sunlight="Partial Shade")
    make_product(name="Hand Trowel", price=450.0, category="Tools")
    make_product(name="Worm Bin", price=2500.0, category="Compost Kits", space="Balcony")

    def names(**kw):
        return sorted(p["name"] for p in catalog.list_products(db, ProductFilter(**kw))["products"])

    assert names(keyword="seeds") == ["Basil Seeds", "Tomato Seeds"]
    assert names(keyword="compost") == ["Worm Bin"]
    assert names(category=["Tools", "Compost Kits"]) == ["Hand Trowel", "Worm Bin"]
    assert names(plant_type=["Herbs"]) == ["Basil Seeds"]
    assert names(min_price=100, max_price=450) == ["Hand Trowel", "Tomato Seeds"]
    assert names(space=["Balcony"], sunlight=["Full Sun"]) == []
    assert names(keyword="(") == []


def test_filter_rejects_non_finite_prices():
    with pytest.raises(ValidationError):
        ProductFilter(min_price=float("inf"))
    with pytest.raises(ValidationError):
        ProductFilter(max_price=float("nan"))


def test_list_products_paging(db, make_product):
    for n in range(12):
        make_product(name=f"Seed pack {n}")

    first = catalog.list_products(db, ProductFilter(page=1))
    second = catalog.list_products(db, ProductFilter(page=2))

    assert first["total"] == second["total"] == 12
    assert len(first["products"]) == 9
    assert len(second["products"]) == 3


def test_get_product(db, make_product):
    pid = make_product(name="Rake", category="Tools")
    assert catalog.get_product(db, pid)["name"] == "Rake"


def test_get_product_bad_id(db):
    with pytest.raises(InvalidRequest):
        catalog.get_product(db, "123")
    with pytest.raises(InvalidRequest):
        catalog.get_product(db, "undefined")


def test_get_product_missing(db):
    with pytest.raises(NotFound):
        catalog.get_product(db, str(ObjectId()))


def test_delete_product_removes_image(db, uploads):
    product = create(db)
    catalog.delete_product(db, product["id"])

    assert db["product"].count_documents({}) == 0
    assert os.listdir(uploads) == []


def test_delete_product_with_missing_image_file(db, make_product):
    pid = make_product()
    catalog.delete_product(db, pid)
    assert db["product"].count_documents({}) == 0


def test_delete_product_missing(db):
    with pytest.raises(NotFound):
        catalog.delete_product(db, str(ObjectId()))
