from typing import Optional, List
from fastapi import APIRouter, Depends, Query, Request, status

from greenleaf.catalog.schemas import (
    CategoryCreate, CategoryResponse, ProductCreate, ProductUpdate, ProductResponse,
    ProductListResponse, ProductSummary, SimilarProductsResponse, CategoryProductsResponse,
)
from greenleaf.catalog.store import CatalogStore
from greenleaf.shared.security_config import limiter
from greenleaf.shared.utils import SuccessResponse, require_admin

router = APIRouter(prefix="/api/products", tags=["products"])
category_router = APIRouter(prefix="/api/categories", tags=["categories"])


def get_catalog(request: Request) -> CatalogStore:
    return CatalogStore(request.app.mongodb)


# --- Products ---

@router.get("", response_model=SuccessResponse[ProductListResponse])
@limiter.limit("60/minute")
async def list_products(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[float] = Query(None, alias="maxPrice", ge=0),
    type: Optional[str] = None,
    sort_by: str = Query("created_at", alias="sortBy"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    catalog: CatalogStore = Depends(get_catalog),
):
    result = await catalog.list_products(
        search=search, category=category, min_price=min_price, max_price=max_price,
        product_type=type, sort_by=sort_by, order=order, page=page, limit=limit,
    )
    return SuccessResponse(data=ProductListResponse(**result))

@router.get("/search", response_model=SuccessResponse[List[ProductSummary]])
@limiter.limit("60/minute")
async def search_products(request: Request, q: str = "", catalog: CatalogStore = Depends(get_catalog)):
    products = await catalog.search(q)
    return SuccessResponse(data=[ProductSummary(**p) for p in products])

@router.get("/featured", response_model=SuccessResponse[List[ProductResponse]])
async def featured_products(catalog: CatalogStore = Depends(get_catalog)):
    return SuccessResponse(data=[ProductResponse(**p) for p in await catalog.featured()])

@router.get("/bulk", response_model=SuccessResponse[List[ProductResponse]])
async def bulk_products(catalog: CatalogStore = Depends(get_catalog)):
    return SuccessResponse(data=[ProductResponse(**p) for p in await catalog.bulk()])

@router.get("/slug/{slug}", response_model=SuccessResponse[ProductResponse])
async def get_product_by_slug(slug: str, catalog: CatalogStore = Depends(get_catalog)):
    return SuccessResponse(data=ProductResponse(**await catalog.get_by_slug(slug)))

@router.get("/id/{product_id}", response_model=SuccessResponse[ProductResponse])
async def get_product_by_id(product_id: str, catalog: CatalogStore = Depends(get_catalog)):
    return SuccessResponse(data=ProductResponse(**await catalog.get_by_id(product_id)))

@router.get("/similar/{slug}", response_model=SuccessResponse[SimilarProductsResponse])
async def similar_products(slug: str, limit: int = Query(8, ge=1, le=50), catalog: CatalogStore = Depends(get_catalog)):
    result = await catalog.similar(slug, limit)
    return SuccessResponse(data=SimilarProductsResponse(**result))

@router.get("/category/{category_slug}", response_model=SuccessResponse[CategoryProductsResponse])
async def products_by_category(
    category_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    catalog: CatalogStore = Depends(get_catalog),
):
    result = await catalog.by_category(category_slug, page, limit)
    return SuccessResponse(data=CategoryProductsResponse(**result))

@router.get("/type/{type_slug}", response_model=SuccessResponse[ProductListResponse])
async def products_by_type(
    type_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    catalog: CatalogStore = Depends(get_catalog),
):
    result = await catalog.list_products(product_type=type_slug, page=page, limit=limit)
    return SuccessResponse(data=ProductListResponse(**result))

@router.post("/add", response_model=SuccessResponse[ProductResponse], status_code=status.HTTP_201_CREATED)
async def create_product(product: ProductCreate, admin: dict = Depends(require_admin), catalog: CatalogStore = Depends(get_catalog)):
    created = await catalog.create_product(product.model_dump())
    return SuccessResponse(data=ProductResponse(**created), message="Product created successfully")

@router.put("/update/{product_id}", response_model=SuccessResponse[ProductResponse])
async def update_product(product_id: str, update: ProductUpdate, admin: dict = Depends(require_admin), catalog: CatalogStore = Depends(get_catalog)):
    updated = await catalog.update_product(product_id, update.model_dump())
    return SuccessResponse(data=ProductResponse(**updated), message="Product updated successfully")

@router.delete("/{product_id}", response_model=SuccessResponse[dict])
async def delete_product(product_id: str, admin: dict = Depends(require_admin), catalog: CatalogStore = Depends(get_catalog)):
    await catalog.delete_product(product_id)
    return SuccessResponse(data={"id": product_id}, message="Product deleted successfully")


# --- Categories ---

@category_router.get("", response_model=SuccessResponse[List[CategoryResponse]])
async def list_categories(catalog: CatalogStore = Depends(get_catalog)):
    return SuccessResponse(data=[CategoryResponse(**c) for c in await catalog.list_categories()])

@category_router.post("/create", response_model=SuccessResponse[CategoryResponse], status_code=status.HTTP_201_CREATED)
async def create_category(category: CategoryCreate, admin: dict = Depends(require_admin), catalog: CatalogStore = Depends(get_catalog)):
    created = await catalog.create_category(category.name, category.image)
    return SuccessResponse(data=CategoryResponse(**created), message="Category created successfully")
