"""
Database Schemas for Haritha Hub

Each Pydantic model represents a collection in MongoDB. The collection name is the
lowercase of the class name (e.g., Product -> "product").

The second half of the module holds the request schemas, one per endpoint.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator

Category = Literal["Seeds", "Tools", "Compost Kits"]
PlantType = Literal["Vegetables", "Herbs", "Leafy Greens", "Flowers", ""]
Sunlight = Literal["Full Sun", "Partial Shade", "Low Light", ""]
Space = Literal["Balcony", "Backyard", "Apartment", "Indoor Gardening", ""]
Growth = Literal["Fast Growing", "Seasonal", "Perennial", ""]
PaymentMethod = Literal["cash_on_delivery", "card_payment"]
OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled", "confirmed"]


class User(BaseModel):
    """
    Users collection schema
    Collection name: "user"
    """
    full_name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="Hashed password")
    contact_number: Optional[str] = Field(None, description="Contact number")
    address: Optional[str] = Field(None, description="Postal address")


class ProductCreate(BaseModel):
    """Product fields supplied by the catalog form, everything but the image."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, description="Product name")
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Unit price")
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0, description="Units in stock")
    category: Category
    plant_type: PlantType = ""
    sunlight: Sunlight = ""
    space: Space = ""
    growth: Growth = ""


class Product(ProductCreate):
    """
    Products collection schema
    Collection name: "product"
    """
    image: str = Field(..., description="Public path of the compressed image")


class LineItem(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=0)
    price: float = Field(..., ge=0, allow_inf_nan=False, description="Snapshot price captured when the item was added")


class ShippingDetails(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    contact_number: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)
    street_address: str = Field(..., min_length=1)
    zip: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    province: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class PaymentDetails(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    payment_method: PaymentMethod
    name_on_card: Optional[str] = None
    card_number: Optional[str] = None
    expiration: Optional[str] = None
    cvc: Optional[str] = None

    @model_validator(mode="after")
    def card_fields(self):
        if self.payment_method == "card_payment":
            if not (self.name_on_card and self.card_number and self.expiration and self.cvc):
                raise ValueError("All card details are required for card payment")
        else:
            self.name_on_card = self.card_number = self.expiration = self.cvc = None
        return self


class Cart(BaseModel):
    """
    Shopping cart collection schema
    Collection name: "cart"

    Shipping and payment are stored as empty dicts until captured.
    """
    user_id: str
    items: List[LineItem] = Field(default_factory=list)
    shipping_details: dict = Field(default_factory=dict)
    payment_details: dict = Field(default_factory=dict)


class OrderItem(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0, allow_inf_nan=False)


class Order(BaseModel):
    """
    Orders collection schema
    Collection name: "order"
    """
    user_id: str
    items: List[OrderItem] = Field(..., min_length=1)
    shipping_details: ShippingDetails
    payment_details: PaymentDetails
    total_amount: float = Field(..., ge=0, allow_inf_nan=False)
    status: OrderStatus = Field("pending", description="Order status")
    created_at: Optional[datetime] = None


class VideoCreate(BaseModel):
    """Tutorial fields supplied with the upload."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)


class Video(VideoCreate):
    """
    Tutorial videos collection schema
    Collection name: "video"
    """
    video_path: str


# Request schemas

class RegisterRequest(BaseModel):
    full_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)
    reenter_password: str = Field(..., min_length=1)

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        # passwords are compared as typed, only the name is trimmed
        return v.strip() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    email: Optional[EmailStr] = None
    contact_number: Optional[str] = None
    address: Optional[str] = None


class CartItemRequest(BaseModel):
    product_id: str = Field(..., min_length=1)
    # 0 removes the line item
    quantity: int = Field(..., ge=0, strict=True)


class SyncCartRequest(BaseModel):
    cart_items: List[CartItemRequest]


class ProductFilter(BaseModel):
    keyword: Optional[str] = None
    category: List[str] = Field(default_factory=list)
    plant_type: List[str] = Field(default_factory=list)
    sunlight: List[str] = Field(default_factory=list)
    space: List[str] = Field(default_factory=list)
    growth: List[str] = Field(default_factory=list)
    min_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    max_price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    page: Optional[int] = Field(None, ge=1)
    per_page: int = Field(9, ge=1, le=100)
