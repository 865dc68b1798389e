from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime
from greenleaf.shared.security_config import sanitize_input

class ReviewCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    rating: int = Field(..., ge=1, le=5)
    title: str = Field(..., min_length=1, max_length=200)
    comment: Optional[str] = Field(None, max_length=2000)

    @field_validator('title', 'comment')
    def sanitize_text(cls, v):
        return sanitize_input(v) if v is not None else v

class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    comment: Optional[str] = Field(None, max_length=2000)

    @field_validator('title', 'comment')
    def sanitize_text(cls, v):
        return sanitize_input(v) if v is not None else v

class ReviewResponse(BaseModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    product_id: str
    rating: int
    title: str
    comment: Optional[str] = None
    verified: bool
    created_at: datetime

class RatingBucket(BaseModel):
    stars: int
    count: int

class ProductReviewsResponse(BaseModel):
    reviews: List[ReviewResponse]
    total_reviews: int
    average_rating: str
    breakdown: List[RatingBucket]
