from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime
from greenleaf.shared.security_config import sanitize_input

ProductType = Literal["Plants", "Seeds", "Tools", "Fertilizers", "Pots"]

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    image: str = Field(..., min_length=1)

    @field_validator('name')
    def sanitize_name(cls, v):
        return sanitize_input(v)

class CategoryResponse(BaseModel):
    id: str
    name: str
    slug: str
    image: str

class ImageSchema(BaseModel):
    url: str
    alt: Optional[str] = None

class ProductCreate(BaseModel):
    name: str = Field(..., min_length=2)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: str = Field(..., min_length=1)
    type: ProductType
    categories: List[str] = []  # category names
    tags: List[str] = []
    price: float = Field(..., ge=0)
    discount_price: float = Field(0, ge=0)
    quantity: int = Field(0, ge=0)
    images: List[ImageSchema] = []
    rating: float = Field(0, ge=0, le=5)
    in_stock: bool = True
    featured: bool = False
    bulk: bool = False

    @field_validator('name', 'description')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2)
    slug: Optional[str] = Field(None, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    description: Optional[str] = None
    type: Optional[ProductType] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    price: Optional[float] = Field(None, ge=0)
    discount_price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)
    images: Optional[List[ImageSchema]] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    in_stock: Optional[bool] = None
    featured: Optional[bool] = None
    bulk: Optional[bool] = None

    @field_validator('name', 'description')
    def sanitize_fields(cls, v):
        return sanitize_input(v)

class ProductResponse(BaseModel):
    id: str
    name: str
    slug: str
    description: str
    type: str
    categories: List[str]
    tags: List[str] = []
    price: float
    discount_price: float
    quantity: int
    images: List[ImageSchema] = []
    rating: float
    in_stock: bool
    featured: bool
    bulk: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

class ProductListResponse(BaseModel):
    products: List[ProductResponse]
    page: int
    total_pages: int
    total_products: int

class ProductSummary(BaseModel):
    id: str
    name: str
    slug: str
    price: float
    images: List[ImageSchema] = []

class SimilarProductsResponse(BaseModel):
    products: List[ProductResponse]
    current_product: str
    total_similar: int

class CategoryProductsResponse(ProductListResponse):
    category: CategoryResponse
