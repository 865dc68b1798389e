from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from greenleaf.shared.utils import utcnow

class CartItemDB(BaseModel):
    product_id: str
    quantity: int

class CartDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    user_id: str
    items: List[CartItemDB] = []
    updated_at: datetime = Field(default_factory=utcnow)
