from __future__ import annotations
from datetime import datetime
from enum import Enum
from typing import Optional, Union
from pydantic import BaseModel, ConfigDict, Field

# Each stored model => one collection (see Settings for the names)


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    # Kept as it arrived from the store; only parsed for display
    price: Union[float, int, str] = 0
    image_url: str = ""
    description: str = ""
    additional_images: tuple[str, ...] = ()
    details: tuple[str, ...] = ()
    specifications: tuple[str, ...] = ()


class OrderDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    full_name: str = ""
    phone: str = ""
    address: str = ""
    city: str = ""
    notes: str = ""


class OrderStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"


class Order(BaseModel):
    product_id: str
    product_name: str
    product_price: Union[float, int, str]
    customer_details: OrderDetails
    status: OrderStatus = OrderStatus.pending
    # Stamped by the store on insert
    created_at: Optional[datetime] = None


class Review(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    product_id: str
    customer_name: str
    rating: int = Field(ge=1, le=5)
    comment: str
    created_at: str
