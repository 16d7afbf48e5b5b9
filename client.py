"""
HTTP client for the Haritha Hub API.

Session state lives in an AuthContext that the caller creates and passes to
the client; nothing is kept in module globals.

    auth = AuthContext()
    with httpx.Client(base_url="http://localhost:8000") as http:
        shop = ShopClient(http, auth)
        shop.login("asha@example.com", "secret")
        shop.add_to_cart(product_id, 2)
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

import httpx


class ApiError(Exception):
    def __init__(self, status_code: int, message: str, details: Optional[str] = None):
        super().__init__(f"{status_code}: {message}" + (f" ({details})" if details else ""))
        self.status_code = status_code
        self.message = message
        self.details = details


class AuthContext:
    """The signed-in user and their bearer token."""

    def __init__(self, token: Optional[str] = None, user: Optional[Dict[str, Any]] = None):
        self.token = token
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def sign_in(self, token: str, user: Dict[str, Any]) -> None:
        self.token = token
        self.user = user

    def update_user(self, user: Dict[str, Any]) -> None:
        self.user = user

    def sign_out(self) -> None:
        self.token = None
        self.user = None

    def headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}


class ShopClient:
    def __init__(self, http: httpx.Client, auth: AuthContext):
        self.http = http
        self.auth = auth

    def _request(self, method: str, url: str, **kwargs) -> Any:
        headers = {**self.auth.headers(), **kwargs.pop("headers", {})}
        resp = self.http.request(method, url, headers=headers, **kwargs)
        if resp.is_error:
            try:
                body = resp.json()
            except ValueError:
                body = {}
            raise ApiError(resp.status_code, body.get("message", resp.reason_phrase), body.get("details"))
        return resp.json()

    # Account

    def register(self, full_name: str, email: str, password: str, reenter_password: Optional[str] = None):
        data = self._request("POST", "/api/users/register", json={
            "full_name": full_name,
            "email": email,
            "password": password,
            "reenter_password": password if reenter_password is None else reenter_password,
        })
        self.auth.sign_in(data["token"], data["user"])
        return data["user"]

    def login(self, email: str, password: str):
        data = self._request("POST", "/api/users/login", json={"email": email, "password": password})
        self.auth.sign_in(data["token"], data["user"])
        return data["user"]

    def edit_profile(self, **changes):
        data = self._request("PUT", "/api/users/profile", json=changes)
        self.auth.update_user(data["user"])
        return data["user"]

    def delete_account(self) -> None:
        self._request("DELETE", "/api/users/account")
        self.auth.sign_out()

    # Catalog

    def list_products(self, **filters) -> Dict[str, Any]:
        params = {k: v for k, v in filters.items() if v is not None}
        return self._request("GET", "/api/products", params=params)

    def get_product(self, product_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/products/{product_id}")

    def add_product(self, image: Tuple[str, bytes], **fields) -> Dict[str, Any]:
        form = {k: str(v) for k, v in fields.items() if v is not None}
        data = self._request("POST", "/api/products", data=form, files={"image": image})
        return data["product"]

    def delete_product(self, product_id: str) -> None:
        self._request("DELETE", f"/api/products/{product_id}")

    # Cart & orders

    def add_to_cart(self, product_id: str, quantity: int) -> List[Dict[str, Any]]:
        data = self._request("POST", "/api/orders/cart", json={"product_id": product_id, "quantity": quantity})
        return data["cart"]

    def remove_from_cart(self, product_id: str) -> List[Dict[str, Any]]:
        return self.add_to_cart(product_id, 0)

    def sync_cart(self, items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        payload = [{"product_id": i["product_id"], "quantity": i["quantity"]} for i in items]
        return self._request("PUT", "/api/orders/cart/sync", json={"cart_items": payload})["cart"]

    def checkout(self) -> Dict[str, Any]:
        return self._request("GET", "/api/orders/checkout")

    def save_shipping(self, shipping: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/orders/shipping", json=shipping)["shipping_details"]

    def save_payment(self, payment: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/api/orders/payment", json=payment)["payment_details"]

    def confirm_order(self) -> str:
        return self._request("POST", "/api/orders/confirm")["order_id"]

    def my_orders(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/orders/my-orders")["orders"]

    def place_order(self, items: Iterable[Dict[str, Any]], shipping: Dict[str, Any],
                    payment: Dict[str, Any]) -> str:
        """Checkout wizard: sync the cart, save shipping and payment, then confirm."""
        valid = [i for i in items if i.get("quantity", 0) >= 1]
        if not valid:
            raise ApiError(400, "Your cart is empty")
        self.sync_cart(valid)
        self.save_shipping(shipping)
        self.save_payment(payment)
        return self.confirm_order()

    # Videos

    def list_videos(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/api/videos")["videos"]

    def add_video(self, title: str, description: str, video: Tuple[str, bytes]) -> Dict[str, Any]:
        data = self._request("POST", "/api/videos", data={"title": title, "description": description},
                             files={"video": video})
        return data["video"]

    def delete_video(self, video_id: str) -> None:
        self._request("DELETE", f"/api/videos/{video_id}")
