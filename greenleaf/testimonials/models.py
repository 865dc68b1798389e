from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from greenleaf.shared.utils import utcnow

class TestimonialDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    name: str
    comment: str
    rating: int = 5
    image: str = ""
    featured: bool = False
    created_at: datetime = Field(default_factory=utcnow)
