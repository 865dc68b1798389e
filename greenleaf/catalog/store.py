"""
Catalog store: products and categories.

Category references on products are stored as category id strings. Deleting
a category is not supported, so a product may keep a dangling reference.
"""
import logging
import math
import random
import re
import unicodedata
import uuid
from typing import Optional, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import DuplicateKeyError

from greenleaf.catalog.models import ProductDB, CategoryDB, PRODUCT_TYPES
from greenleaf.shared.exceptions import NotFoundException, ValidationException
from greenleaf.shared.utils import str_to_oid, utcnow, with_id

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 8
SORTABLE_FIELDS = ("created_at", "price", "rating", "name", "discount_price")


def slugify(value: str) -> str:
    ascii_name = (
        unicodedata.normalize("NFKD", value.lower())
        .encode("ascii", "ignore")
        .decode("ascii")
    )
    slug = re.sub(r"[^a-z0-9]+", "-", ascii_name).strip("-")
    return slug or uuid.uuid4().hex


def effective_price(product: dict) -> float:
    """Price charged per unit: the discount price when it undercuts the list price."""
    price = product.get("price", 0)
    discount = product.get("discount_price") or 0
    if 0 < discount < price:
        return discount
    return price


def _page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


class CatalogStore:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db

    # --- Categories ---

    async def create_category(self, name: str, image: str) -> dict:
        slug = slugify(name)
        existing = await self.db.categories.find_one({"$or": [{"name": name}, {"slug": slug}]})
        if existing:
            raise ValidationException("Category with this name or slug already exists")

        category = CategoryDB(name=name, slug=slug, image=image)
        try:
            result = await self.db.categories.insert_one(category.model_dump(by_alias=True, exclude={"id"}))
        except DuplicateKeyError:
            raise ValidationException("Category with this name or slug already exists")
        return with_id(await self.db.categories.find_one({"_id": result.inserted_id}))

    async def list_categories(self) -> List[dict]:
        cursor = self.db.categories.find({}).sort("name", 1)
        return [with_id(doc) async for doc in cursor]

    async def get_category_by_slug(self, slug: str) -> Optional[dict]:
        return await self.db.categories.find_one({"slug": slug})

    async def _resolve_category_names(self, names: List[str]) -> List[str]:
        ids = []
        for name in names:
            category = await self.db.categories.find_one({"name": name})
            if not category:
                available = [c["name"] async for c in self.db.categories.find({}, {"name": 1})]
                raise ValidationException(
                    f"Category '{name}' does not exist",
                    details={"available_categories": available},
                )
            ids.append(str(category["_id"]))
        return ids

    # --- Products: reads ---

    async def get_product(self, product_id: str) -> Optional[dict]:
        """Lookup used at checkout and cart time; ``None`` when it is gone."""
        return await self.db.products.find_one({"_id": str_to_oid(product_id)})

    async def get_by_id(self, product_id: str) -> dict:
        product = await self.get_product(product_id)
        if not product:
            raise NotFoundException("Product not found")
        return with_id(product)

    async def get_by_slug(self, slug: str) -> dict:
        product = await self.db.products.find_one({"slug": slug})
        if not product:
            raise NotFoundException("Product not found")
        return with_id(product)

    async def list_products(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        product_type: Optional[str] = None,
        sort_by: str = "created_at",
        order: str = "asc",
        page: int = 1,
        limit: int = 10,
    ) -> dict:
        empty = {"products": [], "page": page, "total_pages": 0, "total_products": 0}
        query = {}

        if search:
            query["name"] = {"$regex": re.escape(search), "$options": "i"}

        if category:
            found = await self.get_category_by_slug(category)
            if not found:
                logger.info(f"No category found with slug: {category}")
                return empty
            query["categories"] = str(found["_id"])

        price_query = {}
        if min_price is not None:
            price_query["$gte"] = min_price
        if max_price is not None:
            price_query["$lte"] = max_price
        if price_query:
            query["price"] = price_query

        if product_type:
            matched = [t for t in PRODUCT_TYPES if t.lower() == product_type.lower()]
            if not matched:
                return empty
            query["type"] = matched[0]

        if sort_by not in SORTABLE_FIELDS:
            raise ValidationException(f"Cannot sort by '{sort_by}'")
        direction = -1 if order == "desc" else 1

        skip = (page - 1) * limit
        total = await self.db.products.count_documents(query)
        cursor = self.db.products.find(query).sort(sort_by, direction).skip(skip).limit(limit)
        products = [with_id(doc) for doc in await cursor.to_list(length=limit)]

        return {
            "products": products,
            "page": page,
            "total_pages": _page_count(total, limit),
            "total_products": total,
        }

    async def search(self, q: str) -> List[dict]:
        if not q or not q.strip():
            raise ValidationException("Search query is required")
        cursor = self.db.products.find(
            {"name": {"$regex": re.escape(q.strip()), "$options": "i"}},
            {"name": 1, "slug": 1, "price": 1, "images": 1},
        )
        return [with_id(doc) async for doc in cursor]

    async def featured(self) -> List[dict]:
        featured = [with_id(doc) async for doc in self.db.products.find({"featured": True})]
        return random.sample(featured, min(FEATURED_LIMIT, len(featured)))

    async def bulk(self) -> List[dict]:
        return [with_id(doc) async for doc in self.db.products.find({"bulk": True})]

    async def similar(self, slug: str, limit: int = 8) -> dict:
        current = await self.db.products.find_one({"slug": slug})
        if not current:
            raise NotFoundException("Product not found")

        category_ids = current.get("categories", [])
        if not category_ids:
            return {"products": [], "current_product": current["name"], "total_similar": 0}

        cursor = (
            self.db.products.find({"_id": {"$ne": current["_id"]}, "categories": {"$in": category_ids}})
            .sort([("rating", -1), ("created_at", -1)])
            .limit(limit)
        )
        products = [with_id(doc) for doc in await cursor.to_list(length=limit)]
        logger.info(f"Found {len(products)} similar products for {current['name']!r}")
        return {"products": products, "current_product": current["name"], "total_similar": len(products)}

    async def by_category(self, slug: str, page: int = 1, limit: int = 12) -> dict:
        category = await self.get_category_by_slug(slug)
        if not category:
            raise NotFoundException("Category not found")

        query = {"categories": str(category["_id"])}
        skip = (page - 1) * limit
        total = await self.db.products.count_documents(query)
        cursor = self.db.products.find(query).sort("created_at", -1).skip(skip).limit(limit)
        products = [with_id(doc) for doc in await cursor.to_list(length=limit)]
        return {
            "products": products,
            "category": with_id(category),
            "page": page,
            "total_pages": _page_count(total, limit),
            "total_products": total,
        }

    # --- Products: writes (admin) ---

    async def create_product(self, data: dict) -> dict:
        data = dict(data)
        data["categories"] = await self._resolve_category_names(data.get("categories", []))
        data["slug"] = (data.get("slug") or slugify(data["name"])).lower()
        if await self.db.products.find_one({"slug": data["slug"]}):
            raise ValidationException("Product with this slug already exists")

        product = ProductDB(**data)
        try:
            result = await self.db.products.insert_one(product.model_dump(by_alias=True, exclude={"id"}))
        except DuplicateKeyError:
            raise ValidationException("Product with this slug already exists")
        logger.info(f"Created product {result.inserted_id} ({data['slug']})")
        return with_id(await self.db.products.find_one({"_id": result.inserted_id}))

    async def update_product(self, product_id: str, update: dict) -> dict:
        oid = str_to_oid(product_id)
        if not await self.db.products.find_one({"_id": oid}):
            raise NotFoundException("Product not found")

        update_data = {k: v for k, v in update.items() if v is not None}
        if "categories" in update_data:
            update_data["categories"] = await self._resolve_category_names(update_data["categories"])
        if "slug" in update_data:
            clash = await self.db.products.find_one({"slug": update_data["slug"], "_id": {"$ne": oid}})
            if clash:
                raise ValidationException("Product with this slug already exists")

        if update_data:
            update_data["updated_at"] = utcnow()
            await self.db.products.update_one({"_id": oid}, {"$set": update_data})

        return with_id(await self.db.products.find_one({"_id": oid}))

    async def delete_product(self, product_id: str) -> None:
        result = await self.db.products.delete_one({"_id": str_to_oid(product_id)})
        if result.deleted_count == 0:
            raise NotFoundException("Product not found")
        logger.info(f"Deleted product {product_id}")
