"""
Cart store: one mutable cart document per user.

Every operation reads the cart, mutates it in memory and writes it back, so
two concurrent requests for the same user are last-write-wins and one of the
updates may be lost. There is no optimistic concurrency control.
"""
import logging
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from greenleaf.cart.models import CartDB
from greenleaf.catalog.store import CatalogStore, effective_price
from greenleaf.shared.exceptions import NotFoundException
from greenleaf.shared.utils import utcnow

logger = logging.getLogger(__name__)


class CartStore:
    def __init__(self, db: AsyncIOMotorDatabase, catalog: CatalogStore):
        self.db = db
        self.catalog = catalog

    async def get_cart(self, user_id: str) -> dict:
        """The user's cart, or an empty unsaved one."""
        cart = await self.db.carts.find_one({"user_id": user_id})
        if not cart:
            return CartDB(user_id=user_id, items=[]).model_dump(exclude={"id"})
        return cart

    async def _save_items(self, user_id: str, items: List[dict]) -> dict:
        await self.db.carts.update_one(
            {"user_id": user_id},
            {"$set": {"items": items, "updated_at": utcnow()}},
            upsert=True,
        )
        return await self.get_cart(user_id)

    async def add_item(self, user_id: str, product_id: str, quantity: int) -> dict:
        if not await self.catalog.get_product(product_id):
            raise NotFoundException(f"Product {product_id} not found")

        cart = await self.get_cart(user_id)
        items = cart.get("items", [])
        for item in items:
            if item["product_id"] == product_id:
                item["quantity"] += quantity
                break
        else:
            items.append({"product_id": product_id, "quantity": quantity})

        return await self._save_items(user_id, items)

    async def set_item_quantity(self, user_id: str, product_id: str, quantity: int) -> dict:
        cart = await self.db.carts.find_one({"user_id": user_id})
        if not cart:
            return await self.get_cart(user_id)

        items = cart.get("items", [])
        for item in items:
            if item["product_id"] == product_id:
                item["quantity"] = quantity
                return await self._save_items(user_id, items)
        return cart

    async def remove_item(self, user_id: str, product_id: str) -> dict:
        await self.db.carts.update_one(
            {"user_id": user_id},
            {"$pull": {"items": {"product_id": product_id}}, "$set": {"updated_at": utcnow()}},
        )
        return await self.get_cart(user_id)

    async def clear(self, user_id: str) -> None:
        await self.db.carts.delete_one({"user_id": user_id})

    async def view(self, user_id: str) -> dict:
        """The cart joined with current catalog data and a running total."""
        cart = await self.get_cart(user_id)
        items = []
        total = 0.0
        for item in cart.get("items", []):
            product = await self.catalog.get_product(item["product_id"])
            if not product:
                items.append({**item, "available": False})
                continue
            unit_price = effective_price(product)
            total += unit_price * item["quantity"]
            images = product.get("images") or []
            items.append({
                **item,
                "name": product["name"],
                "price": product["price"],
                "discount_price": product.get("discount_price", 0),
                "image": images[0]["url"] if images else None,
            })
        return {
            "user_id": user_id,
            "items": items,
            "total": round(total, 2),
            "updated_at": cart.get("updated_at"),
        }
