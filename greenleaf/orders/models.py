from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from greenleaf.shared.utils import utcnow

class OrderItemDB(BaseModel):
    # Snapshot of the product at purchase time; later catalog edits do not touch it
    product_id: str
    name: str
    price: float
    discount_price: float = 0
    image: str = ""
    quantity: int

class OrderDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    user_id: str
    user_name: str
    items: List[OrderItemDB]
    total_amount: float
    payment_method: str  # online, COD
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None
    status: str = "pending"  # pending (COD), completed (paid online)
    is_delivered: bool = False
    delivered_at: Optional[datetime] = None
    idempotency_key: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
