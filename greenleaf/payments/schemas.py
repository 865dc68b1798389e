from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List, Literal
from datetime import datetime

class CreateIntentRequest(BaseModel):
    # amount <= 0 is rejected by the service with INVALID_AMOUNT
    amount: Optional[float] = None

class PaymentIntentResponse(BaseModel):
    order_id: str
    amount: int
    currency: str

class CartSnapshotItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="_id")
    quantity: int = Field(..., gt=0)

class PaymentData(BaseModel):
    razorpay_order_id: Optional[str] = None
    razorpay_payment_id: Optional[str] = None
    razorpay_signature: Optional[str] = None

class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    order_id: Optional[str] = Field(None, alias="orderId")
    payment_data: PaymentData = Field(default_factory=PaymentData, alias="paymentData")
    amount: float
    cart_items: List[CartSnapshotItem] = Field([], alias="cartItems")
    payment_method: Literal["online", "COD"] = Field("online", alias="paymentMethod")

class CodOrderRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    cart_items: List[CartSnapshotItem] = Field([], alias="cartItems")
    total_amount: Optional[float] = Field(None, alias="totalAmount")
    idempotency_key: Optional[str] = Field(None, alias="idempotencyKey", max_length=128)

class PaymentResponse(BaseModel):
    id: str
    user_id: str
    order_id: str
    payment_id: str
    amount: float
    status: str
    created_at: datetime
