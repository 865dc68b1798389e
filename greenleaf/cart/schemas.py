from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

class CartItemAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    quantity: int = Field(1, gt=0)

class CartItemUpdate(BaseModel):
    quantity: int = Field(..., gt=0)

class CartItemResponse(BaseModel):
    product_id: str
    quantity: int
    # Current catalog data; empty when the product has since been deleted
    name: Optional[str] = None
    price: Optional[float] = None
    discount_price: Optional[float] = None
    image: Optional[str] = None
    available: bool = True

class CartResponse(BaseModel):
    user_id: str
    items: List[CartItemResponse]
    total: float
    updated_at: Optional[datetime] = None
