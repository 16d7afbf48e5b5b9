"""
Order workflow: cart mutation, shipping/payment capture, checkout pricing
and order confirmation for one user at a time.

Every operation is a separate round trip with no server-side coordination
between them. Confirmation writes the order and then resets the cart as two
independent writes, and stock is validated when items enter the cart but is
never decremented.
"""

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, now_utc
from errors import InvalidRequest, NotFound, describe_validation_errors
from schemas import (Cart, CartItemRequest, LineItem, Order, OrderItem, PaymentDetails,
                     ShippingDetails, SyncCartRequest)

logger = logging.getLogger(__name__)


def get_cart(db: Database, user_id: str) -> Optional[Dict[str, Any]]:
    return db["cart"].find_one({"user_id": user_id})


def cart_total(items: List[Dict[str, Any]]) -> float:
    return round(sum(float(i["price"]) * int(i["quantity"]) for i in items), 2)


def _find_product(db: Database, product_id: str) -> Optional[Dict[str, Any]]:
    if not ObjectId.is_valid(product_id):
        raise InvalidRequest("Invalid product ID")
    return db["product"].find_one({"_id": ObjectId(product_id)})


def _check_stock(product: Dict[str, Any], quantity: int) -> None:
    stock = int(product.get("quantity", 0))
    if quantity > stock:
        raise InvalidRequest(f"Only {stock} items of {product.get('name')} available in stock")


def _blank(user_id: str, *fields: str) -> Dict[str, Any]:
    empty = Cart(user_id=user_id).model_dump()
    return {f: empty[f] for f in fields}


def _save_items(db: Database, user_id: str, items: List[Dict[str, Any]]) -> None:
    now = now_utc()
    db["cart"].update_one(
        {"user_id": user_id},
        {
            "$set": {"items": items, "updated_at": now},
            "$setOnInsert": {**_blank(user_id, "shipping_details", "payment_details"), "created_at": now},
        },
        upsert=True,
    )


def upsert_cart_item(db: Database, user_id: str, req: CartItemRequest) -> List[Dict[str, Any]]:
    """
    Add, increment or remove one line item.

    quantity 0 removes the product's line; a positive quantity is added on top
    of whatever the cart already holds for that product, and the sum must fit
    in the product's current stock.
    """
    cart = get_cart(db, user_id)
    items = list(cart.get("items", [])) if cart else []
    index = next((n for n, it in enumerate(items) if it["product_id"] == req.product_id), None)

    if req.quantity == 0:
        if index is None:
            raise NotFound("Product not found in cart")
        items.pop(index)
    else:
        product = _find_product(db, req.product_id)
        if not product:
            raise NotFound("Product not found")
        _check_stock(product, req.quantity)
        if index is None:
            items.append(LineItem(product_id=req.product_id, quantity=req.quantity,
                                  price=float(product.get("price", 0))).model_dump())
        else:
            new_quantity = int(items[index]["quantity"]) + req.quantity
            _check_stock(product, new_quantity)
            items[index] = {**items[index], "quantity": new_quantity}

    _save_items(db, user_id, items)
    return items


def sync_cart(db: Database, user_id: str, req: SyncCartRequest) -> List[Dict[str, Any]]:
    """
    Replace the cart's line items with the supplied list.

    The whole list is validated before anything is written. Entries with
    quantity 0 are dropped and repeated product ids are merged.
    """
    for entry in req.cart_items:
        if not ObjectId.is_valid(entry.product_id):
            raise InvalidRequest("Invalid product ID")

    ids = [ObjectId(e.product_id) for e in req.cart_items]
    products = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": ids}})} if ids else {}

    merged: Dict[str, int] = {}
    for entry in req.cart_items:
        if entry.product_id not in products:
            raise NotFound(f"Product with ID {entry.product_id} not found")
        merged[entry.product_id] = merged.get(entry.product_id, 0) + entry.quantity

    items = []
    for product_id, quantity in merged.items():
        if quantity == 0:
            continue
        product = products[product_id]
        _check_stock(product, quantity)
        items.append(LineItem(product_id=product_id, quantity=quantity,
                              price=float(product.get("price", 0))).model_dump())

    _save_items(db, user_id, items)
    return items


def get_checkout_view(db: Database, user_id: str) -> Dict[str, Any]:
    cart = get_cart(db, user_id)
    if not cart or not cart.get("items"):
        raise InvalidRequest("Cart is empty or not found")

    items = cart["items"]
    ids = [ObjectId(i["product_id"]) for i in items if ObjectId.is_valid(i["product_id"])]
    products = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": ids}})}

    lines = []
    for item in items:
        product = products.get(item["product_id"], {})
        lines.append({
            "product_id": item["product_id"],
            "quantity": item["quantity"],
            "price": item["price"],
            "stock_quantity": product.get("quantity", 0),
            "name": product.get("name"),
            "image": product.get("image"),
        })
    return {"products": lines, "total_amount": cart_total(items)}


def _upsert_section(db: Database, user_id: str, field: str, value: Dict[str, Any]) -> None:
    other = "payment_details" if field == "shipping_details" else "shipping_details"
    now = now_utc()
    db["cart"].update_one(
        {"user_id": user_id},
        {
            "$set": {field: value, "updated_at": now},
            "$setOnInsert": {**_blank(user_id, "items", other), "created_at": now},
        },
        upsert=True,
    )


def save_shipping(db: Database, user_id: str, shipping: ShippingDetails) -> Dict[str, Any]:
    details = shipping.model_dump()
    _upsert_section(db, user_id, "shipping_details", details)
    return details


def save_payment(db: Database, user_id: str, payment: PaymentDetails) -> Dict[str, Any]:
    details = payment.model_dump(exclude_none=True)
    _upsert_section(db, user_id, "payment_details", details)
    return details


def confirm_order(db: Database, user_id: str) -> str:
    """Freeze the cart into a confirmed order, reset the cart, return the order id."""
    cart = get_cart(db, user_id)
    if not cart:
        raise NotFound("Cart not found")
    shipping = cart.get("shipping_details") or {}
    if not shipping:
        raise InvalidRequest("Shipping details are required")
    payment = cart.get("payment_details") or {}
    if not payment.get("payment_method"):
        raise InvalidRequest("Payment method is required")

    valid = [i for i in cart.get("items", []) if int(i.get("quantity", 0)) >= 1]
    if not valid:
        raise InvalidRequest("Cart is empty or contains no valid items")

    try:
        order = Order(
            user_id=user_id,
            items=[OrderItem(product_id=i["product_id"], quantity=i["quantity"], price=i["price"]) for i in valid],
            shipping_details=ShippingDetails(**shipping),
            payment_details=PaymentDetails(**payment),
            total_amount=cart_total(valid),
            status="confirmed",
        )
    except ValidationError as e:
        raise InvalidRequest("Saved checkout details are incomplete", details=describe_validation_errors(e.errors()))

    order_id = create_document(db, "order", order)
    logger.info("Confirmed order %s for user %s, total %.2f", order_id, user_id, order.total_amount)

    try:
        db["cart"].update_one(
            {"user_id": user_id},
            {"$set": {"items": [], "shipping_details": {}, "payment_details": {}, "updated_at": now_utc()}},
        )
    except PyMongoError:
        # the order stands; the cart keeps its old contents
        logger.exception("Failed to reset cart for user %s after order %s", user_id, order_id)
    return order_id


def list_my_orders(db: Database, user_id: str) -> List[Dict[str, Any]]:
    orders = list(db["order"].find({"user_id": user_id}).sort("created_at", -1))
    ids = {ObjectId(i["product_id"]) for o in orders for i in o.get("items", []) if ObjectId.is_valid(i["product_id"])}
    products = {str(p["_id"]): p for p in db["product"].find({"_id": {"$in": list(ids)}}, {"name": 1, "image": 1})}

    result = []
    for order in orders:
        lines = []
        for item in order.get("items", []):
            product = products.get(item["product_id"], {})
            lines.append({
                "product_id": item["product_id"],
                "name": product.get("name"),
                "image": product.get("image"),
                "price": item["price"],
                "quantity": item["quantity"],
            })
        result.append({
            "id": str(order["_id"]),
            "products": lines,
            "shipping_details": order.get("shipping_details"),
            "payment_details": order.get("payment_details"),
            "total_amount": order.get("total_amount"),
            "status": order.get("status"),
            "created_at": order.get("created_at"),
        })
    return result
