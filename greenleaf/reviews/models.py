from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from greenleaf.shared.utils import utcnow

class ReviewDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    user_id: str
    product_id: str
    rating: int
    title: str
    comment: Optional[str] = None
    # set when the reviewer has an order containing the product
    verified: bool = False
    created_at: datetime = Field(default_factory=utcnow)
