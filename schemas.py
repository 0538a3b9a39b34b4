"""
Database Schemas for LocalChefBazaar

Each request model below feeds one MongoDB collection. Documents stay
loosely typed: the core fields are validated, any extra field the client
sends is stored as-is. Field names go over the wire (and into MongoDB) in
camelCase.
"""
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Meal(Document):
    name: str = Field(..., description="Meal name")
    price: float = Field(..., ge=0)
    quantity: Optional[int] = Field(None, ge=0, description="Portions available")
    chef_id: Optional[str] = Field(None, description="chef-XXXX of the owner")
    chef_email: Optional[EmailStr] = None


class User(Document):
    email: EmailStr = Field(..., description="Unique email address")
    name: Optional[str] = None
    photo: Optional[str] = None
    role: str = "user"


class RoleRequest(Document):
    email: EmailStr = Field(..., description="Requester email, one pending request each")
    name: Optional[str] = None
    request_type: str = "chef"
    request_status: str = "pending"


class Review(Document):
    reviewer_email: EmailStr
    reviewer_name: Optional[str] = None
    reviewer_image: Optional[str] = None
    rating: float = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class Favorite(Document):
    user_email: EmailStr
    meal_name: Optional[str] = None
    chef_id: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


class Order(Document):
    meal_id: str
    meal_name: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)
    chef_id: Optional[str] = None
    user_email: EmailStr
    user_address: Optional[str] = None
    order_status: str = "pending"


class CheckoutSessionRequest(Document):
    order_id: str
    meal_id: Optional[str] = None
    meal_name: str
    price: float = Field(..., gt=0, description="Unit price in dollars")
    quantity: int = Field(1, ge=1)
    chef_id: Optional[str] = None
    customer_email: EmailStr


SortOrder = Literal["asc", "desc"]

# Written only by the checkout bridge, never taken from an order request.
ORDER_PAYMENT_FIELDS = ("paymentStatus", "paidAt", "sessionId", "transactionId")
