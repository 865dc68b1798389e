from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from greenleaf.shared.utils import utcnow

class PaymentDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    user_id: str
    order_id: str  # gateway order (intent) id
    payment_id: str
    amount: float
    status: str = "Success"  # Success, Failed
    created_at: datetime = Field(default_factory=utcnow)
