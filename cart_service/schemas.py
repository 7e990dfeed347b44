from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from datetime import datetime


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock: int = Field(0, ge=0)


class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    stock: int

    model_config = {"from_attributes": True}


class StockUpdate(BaseModel):
    # range is checked by the repository so the error contract stays in one place
    new_stock: int


class CartAddRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Cart owner")
    product_id: int
    quantity: int


class CartRemoveRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Cart owner")
    product_id: int


class CheckoutRequest(BaseModel):
    user_id: str = Field(..., min_length=1, description="Cart owner")


class CartLineOut(BaseModel):
    product_id: int
    quantity: int
    price: Decimal


class CartOut(BaseModel):
    user_id: str
    items: List[CartLineOut] = []
    total: Decimal


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    price: Decimal

    model_config = {"from_attributes": True}


class OrderOut(BaseModel):
    id: int
    user_id: str = Field(..., validation_alias="owner_id")
    total: Decimal
    created_at: datetime
    items: List[OrderItemOut] = []

    model_config = {"from_attributes": True}
