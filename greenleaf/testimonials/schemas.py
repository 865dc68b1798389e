from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from greenleaf.shared.security_config import sanitize_input

class TestimonialCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    comment: str = Field(..., min_length=1, max_length=2000)
    rating: int = Field(5, ge=1, le=5)
    image: str = ""
    featured: bool = False

    @field_validator('name', 'comment')
    def sanitize_text(cls, v):
        return sanitize_input(v)

class TestimonialUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    comment: Optional[str] = Field(None, min_length=1, max_length=2000)
    rating: Optional[int] = Field(None, ge=1, le=5)
    image: Optional[str] = None
    featured: Optional[bool] = None

    @field_validator('name', 'comment')
    def sanitize_text(cls, v):
        return sanitize_input(v) if v is not None else v

class TestimonialResponse(BaseModel):
    id: str
    name: str
    comment: str
    rating: int
    image: str
    featured: bool
    created_at: datetime
