"""
Database Schemas and request bodies for the E-Grocery API.

Each collection model maps to one MongoDB collection (products, orders,
payments, users). Documents are stored with snake_case field names; request
bodies accept the camelCase names the web client sends.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

PaymentMethod = Literal["upi", "cod"]
PaymentStatus = Literal["pending", "success", "failed"]
OrderStatus = Literal["pending", "confirmed", "shipped", "delivered", "cancelled"]
Role = Literal["customer", "admin"]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ----------------------- Collections -----------------------

class Product(CamelModel):
    name: str
    description: str = ""
    price: float = Field(..., ge=0)
    category: str
    stock: int = Field(..., ge=0)
    unit: str = "pcs"
    image: str = "/placeholder-product.png"
    low_stock_threshold: int = 10
    is_active: bool = True


class LineItem(CamelModel):
    """Priced snapshot of one product at order time."""
    product_id: str
    name: str
    price: float
    quantity: int
    unit: Optional[str] = None
    image: Optional[str] = None
    total: float


class Address(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    name: Optional[str] = None
    phone: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    landmark: Optional[str] = None


class Order(CamelModel):
    order_number: str
    user_id: str
    user_email: Optional[str] = None
    items: List[LineItem]
    subtotal: float
    delivery_charge: float
    tax: float
    total: float
    address: Address
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    order_status: OrderStatus


class Payment(CamelModel):
    order_id: str
    order_number: str
    user_id: str
    amount: float
    method: PaymentMethod
    status: PaymentStatus
    transaction_id: Optional[str] = None


class UserProfile(CamelModel):
    uid: str
    email: EmailStr
    name: str
    phone: str = ""
    address: Optional[Address] = None
    role: Role = "customer"


# ----------------------- Request bodies -----------------------

class OrderItemRequest(CamelModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class PaymentDetails(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    transaction_id: Optional[str] = None


class PlaceOrderRequest(CamelModel):
    # Presence of items/address/paymentMethod is checked when the order is assembled
    items: List[OrderItemRequest] = Field(default_factory=list)
    address: Optional[Address] = None
    payment_method: Optional[PaymentMethod] = None
    payment_details: Optional[PaymentDetails] = None


class StatusUpdateRequest(CamelModel):
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., gt=0)
    category: str = Field(..., min_length=1)
    stock: int = Field(..., ge=0)
    unit: str = "pcs"
    image: str = "/placeholder-product.png"
    low_stock_threshold: int = 10


class ProductUpdate(CamelModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    category: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    unit: Optional[str] = None
    image: Optional[str] = None
    low_stock_threshold: Optional[int] = None
    is_active: Optional[bool] = None


class RegisterUserRequest(CamelModel):
    uid: str = Field(..., min_length=1)
    email: EmailStr
    name: str = Field(..., min_length=1)
    phone: str = ""
    role: Role = "customer"


class ProfileUpdate(CamelModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[Address] = None


class PaymentInitiateRequest(CamelModel):
    amount: float = Field(..., gt=0)
    # Accepted for client compatibility; the payment link does not use it
    order_id: Optional[str] = None


class PaymentVerifyRequest(CamelModel):
    transaction_id: str
