from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime

class OrderItemResponse(BaseModel):
    product_id: str
    name: str
    price: float
    discount_price: float = 0
    image: str = ""
    quantity: int

class OrderResponse(BaseModel):
    id: str
    user_id: str
    user_name: str
    items: List[OrderItemResponse]
    total_amount: float
    payment_method: str
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    status: str
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    created_at: datetime

class AdminOrderResponse(OrderResponse):
    user_email: Optional[str] = None
