from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from greenleaf.shared.utils import utcnow

PRODUCT_TYPES = ("Plants", "Seeds", "Tools", "Fertilizers", "Pots")

class ImageDB(BaseModel):
    url: str
    alt: Optional[str] = None

class ProductDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    name: str
    slug: str
    description: str
    type: str
    categories: List[str] = []  # category ids
    tags: List[str] = []
    price: float
    discount_price: float = 0
    quantity: int = 0
    images: List[ImageDB] = []
    rating: float = 0
    in_stock: bool = True
    featured: bool = False
    bulk: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

class CategoryDB(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    name: str
    slug: str
    image: str
    created_at: datetime = Field(default_factory=utcnow)
