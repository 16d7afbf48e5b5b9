"""
Catalog management: create, list, get and delete products.

Product images are recompressed on upload; only the compressed copy is kept.
"""

import logging
import re
from typing import Any, BinaryIO, Dict, List, Optional

from bson import ObjectId
from pydantic import ValidationError
from pymongo.database import Database
from pymongo.errors import PyMongoError

import media
from database import create_document, get_documents, is_valid_id
from errors import InternalError, InvalidRequest, NotFound, describe_validation_errors
from schemas import Product, ProductCreate, ProductFilter

logger = logging.getLogger(__name__)

PROJECTION = {
    "name": 1, "price": 1, "description": 1, "image": 1, "quantity": 1,
    "category": 1, "plant_type": 1, "sunlight": 1, "space": 1, "growth": 1,
}


def public_product(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "name": doc.get("name"),
        "price": doc.get("price"),
        "description": doc.get("description"),
        "image": doc.get("image"),
        "quantity": doc.get("quantity"),
        "category": doc.get("category"),
        "plant_type": doc.get("plant_type", ""),
        "sunlight": doc.get("sunlight", ""),
        "space": doc.get("space", ""),
        "growth": doc.get("growth", ""),
    }


def parse_product_fields(fields: Dict[str, Any]) -> ProductCreate:
    supplied = {k: v for k, v in fields.items() if v is not None}
    try:
        return ProductCreate(**supplied)
    except ValidationError as e:
        raise InvalidRequest("Invalid product details", details=describe_validation_errors(e.errors()))


def create_product(db: Database, fields: Dict[str, Any], image: Optional[BinaryIO],
                   image_name: Optional[str]) -> Dict[str, Any]:
    if image is None or not image_name:
        raise InvalidRequest("Name, price, description, image, quantity, and category are required")
    data = parse_product_fields(fields)

    original = media.save_upload(image, image_name)
    try:
        compressed = media.compress_image(original)
    finally:
        if not media.remove_file(media.public_path(original)):
            logger.warning("Failed to delete original upload %s", original)

    product = Product(**data.model_dump(), image=media.public_path(compressed))
    try:
        pid = create_document(db, "product", product)
    except PyMongoError as e:
        media.remove_file(product.image)
        raise InternalError("Failed to save product", details=str(e))

    logger.info("Created product %s (%s)", pid, product.name)
    return public_product({"_id": pid, **product.model_dump()})


def _product_query(flt: ProductFilter) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    if flt.keyword:
        pattern = {"$regex": re.escape(flt.keyword), "$options": "i"}
        query["$or"] = [{"name": pattern}, {"category": pattern}]
    for field in ("category", "plant_type", "sunlight", "space", "growth"):
        values = getattr(flt, field)
        if values:
            query[field] = {"$in": values}
    price: Dict[str, float] = {}
    if flt.min_price is not None:
        price["$gte"] = flt.min_price
    if flt.max_price is not None:
        price["$lte"] = flt.max_price
    if price:
        query["price"] = price
    return query


def list_products(db: Database, flt: Optional[ProductFilter] = None) -> Dict[str, Any]:
    flt = flt or ProductFilter()
    docs = get_documents(db, "product", _product_query(flt))
    valid: List[Dict[str, Any]] = [d for d in docs if is_valid_id(d.get("_id"))]
    if len(valid) != len(docs):
        logger.warning("Filtered out %d products with invalid IDs", len(docs) - len(valid))

    total = len(valid)
    if flt.page is not None:
        start = (flt.page - 1) * flt.per_page
        valid = valid[start:start + flt.per_page]
    return {"products": [public_product(d) for d in valid], "total": total}


def _object_id(product_id: str) -> ObjectId:
    if not product_id or product_id == "undefined":
        raise InvalidRequest("Product ID is required")
    if not ObjectId.is_valid(product_id):
        raise InvalidRequest("Invalid product ID format")
    return ObjectId(product_id)


def get_product(db: Database, product_id: str) -> Dict[str, Any]:
    product = db["product"].find_one({"_id": _object_id(product_id)}, PROJECTION)
    if not product:
        raise NotFound("Product not found")
    return public_product(product)


def delete_product(db: Database, product_id: str) -> None:
    oid = _object_id(product_id)
    product = db["product"].find_one({"_id": oid})
    if not product:
        raise NotFound("Product not found")
    media.remove_file(product.get("image"))
    db["product"].delete_one({"_id": oid})
    logger.info("Deleted product %s", product_id)
