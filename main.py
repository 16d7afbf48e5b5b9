import logging
import os
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.staticfiles import StaticFiles
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

import accounts
import catalog
import database
import media
import orders
import videos
from database import current_db, ensure_indexes, find_by_id, get_db
from errors import ShopError, Unauthenticated, describe_validation_errors
from schemas import (CartItemRequest, LoginRequest, PaymentDetails, ProductFilter, ProfileUpdate,
                     RegisterRequest, ShippingDetails, SyncCartRequest)
from security import decode_token

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if database.db is not None:
        ensure_indexes(database.db)
    yield


app = FastAPI(title="Haritha Hub API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/uploads", StaticFiles(directory=media.upload_dir()), name="uploads")


# Error responses: {"message": ..., "details"?: ...}

@app.exception_handler(ShopError)
async def shop_error_handler(request: Request, exc: ShopError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s %s", request.method, request.url.path, exc.message, exc.details or "")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    body = {"message": "Invalid request", "details": describe_validation_errors(exc.errors())}
    return JSONResponse(status_code=400, content=body)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error in %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Internal server error", "details": str(exc)})


# Auth

bearer = HTTPBearer(auto_error=False)


def current_user_id(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
                    db: Database = Depends(get_db)) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthenticated("User not authenticated")
    user_id = decode_token(credentials.credentials)
    if not find_by_id(db, "user", user_id):
        raise Unauthenticated("User not authenticated")
    return user_id


@app.get("/")
def read_root():
    return {"message": "Haritha Hub API running"}


@app.get("/test")
def health(handle: Optional[Database] = Depends(current_db)):
    """Store and upload status for deploy checks. Never fails, reports instead."""
    status = {
        "database": "not configured",
        "database_name": None,
        "collections": [],
        "indexes_ready": False,
        "uploads": media.UPLOAD_DIR,
    }
    if handle is None:
        return status
    status["database_name"] = handle.name
    try:
        status["collections"] = sorted(handle.list_collection_names())
        status["indexes_ready"] = "user_id_1" in handle["cart"].index_information()
        status["database"] = "connected"
    except PyMongoError as e:
        logger.warning("Health check could not reach the database: %s", e)
        status["database"] = "unreachable"
    return status


# Users

@app.post("/api/users/register", status_code=201)
def register(payload: RegisterRequest, db: Database = Depends(get_db)):
    return accounts.register(db, payload)


@app.post("/api/users/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    return accounts.login(db, payload)


@app.put("/api/users/profile")
def edit_profile(payload: ProfileUpdate, user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    return {"user": accounts.edit_profile(db, user_id, payload)}


@app.delete("/api/users/account")
def delete_account(user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    accounts.delete_account(db, user_id)
    return {"message": "Account deleted successfully"}


# Products

@app.post("/api/products", status_code=201)
def create_product(
    name: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    quantity: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    plant_type: Optional[str] = Form(None),
    sunlight: Optional[str] = Form(None),
    space: Optional[str] = Form(None),
    growth: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
):
    fields = {
        "name": name, "price": price, "description": description, "quantity": quantity,
        "category": category, "plant_type": plant_type, "sunlight": sunlight,
        "space": space, "growth": growth,
    }
    product = catalog.create_product(
        db, fields,
        image.file if image is not None else None,
        image.filename if image is not None else None,
    )
    return {"product": product}


@app.get("/api/products")
def list_products(
    keyword: Optional[str] = None,
    category: List[str] = Query(default=[]),
    plant_type: List[str] = Query(default=[]),
    sunlight: List[str] = Query(default=[]),
    space: List[str] = Query(default=[]),
    growth: List[str] = Query(default=[]),
    min_price: Optional[float] = Query(None, ge=0, allow_inf_nan=False),
    max_price: Optional[float] = Query(None, ge=0, allow_inf_nan=False),
    page: Optional[int] = Query(None, ge=1),
    per_page: int = Query(9, ge=1, le=100),
    db: Database = Depends(get_db),
):
    flt = ProductFilter(
        keyword=keyword, category=category, plant_type=plant_type, sunlight=sunlight,
        space=space, growth=growth, min_price=min_price, max_price=max_price,
        page=page, per_page=per_page,
    )
    return catalog.list_products(db, flt)


@app.get("/api/products/{product_id}")
def get_product(product_id: str, db: Database = Depends(get_db)):
    return catalog.get_product(db, product_id)


@app.delete("/api/products/{product_id}")
def delete_product(product_id: str, db: Database = Depends(get_db)):
    catalog.delete_product(db, product_id)
    return {"message": "Product deleted successfully"}


# Cart & orders

@app.post("/api/orders/cart")
def add_to_cart(payload: CartItemRequest, user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    items = orders.upsert_cart_item(db, user_id, payload)
    return {"message": "Cart updated successfully", "cart": items}


@app.put("/api/orders/cart/sync")
def sync_cart(payload: SyncCartRequest, user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    items = orders.sync_cart(db, user_id, payload)
    return {"message": "Cart synced successfully", "cart": items}


@app.get("/api/orders/checkout")
def checkout(user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    return orders.get_checkout_view(db, user_id)


@app.post("/api/orders/shipping")
def save_shipping(payload: ShippingDetails, user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    details = orders.save_shipping(db, user_id, payload)
    return {"message": "Shipping details saved", "shipping_details": details}


@app.post("/api/orders/payment")
def save_payment(payload: PaymentDetails, user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    details = orders.save_payment(db, user_id, payload)
    return {"message": "Payment details saved", "payment_details": details}


@app.post("/api/orders/confirm", status_code=201)
def confirm_order(user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    order_id = orders.confirm_order(db, user_id)
    return {"order_id": order_id, "message": "Order confirmed successfully"}


@app.get("/api/orders/my-orders")
def my_orders(user_id: str = Depends(current_user_id), db: Database = Depends(get_db)):
    return {"orders": orders.list_my_orders(db, user_id)}


# Videos

@app.post("/api/videos", status_code=201)
def create_video(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    video: Optional[UploadFile] = File(None),
    db: Database = Depends(get_db),
):
    created = videos.create_video(
        db, title, description,
        video.file if video is not None else None,
        video.filename if video is not None else None,
    )
    return {"video": created}


@app.get("/api/videos")
def list_videos(db: Database = Depends(get_db)):
    return {"videos": videos.list_videos(db)}


@app.delete("/api/videos/{video_id}")
def delete_video(video_id: str, db: Database = Depends(get_db)):
    videos.delete_video(db, video_id)
    return {"message": "Video deleted successfully"}


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
