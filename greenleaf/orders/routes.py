import calendar
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request

from greenleaf.orders.schemas import OrderResponse, AdminOrderResponse
from greenleaf.shared.exceptions import NotFoundException
from greenleaf.shared.utils import (
    SuccessResponse, get_current_user, require_admin, ensure_self_or_admin,
    str_to_oid, utcnow, with_id,
)

router = APIRouter(prefix="/api/orders", tags=["orders"])

RANGE_MONTHS = {"1m": 1, "3m": 3, "1y": 12}


def months_ago(now: datetime, months: int) -> datetime:
    """Same day-of-month ``months`` calendar months back, clamped to month length."""
    year, month = divmod(now.year * 12 + now.month - 1 - months, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def range_start(range_key: str, now: Optional[datetime] = None) -> Optional[datetime]:
    months = RANGE_MONTHS.get(range_key)
    if months is None:
        return None
    return months_ago(now or utcnow(), months)


@router.get("/get/{user_id}", response_model=SuccessResponse[List[OrderResponse]])
async def get_user_orders(user_id: str, request: Request, user: dict = Depends(get_current_user)):
    ensure_self_or_admin(user, user_id)
    cursor = request.app.mongodb.orders.find({"user_id": user_id}).sort("created_at", -1)
    orders = [OrderResponse(**with_id(doc)) async for doc in cursor]
    return SuccessResponse(data=orders)

@router.get("/admin/orders", response_model=SuccessResponse[List[AdminOrderResponse]])
async def get_all_orders(
    request: Request,
    range: str = Query("all", pattern="^(all|1m|3m|1y)$"),
    admin: dict = Depends(require_admin),
):
    db = request.app.mongodb
    start = range_start(range)
    query = {"created_at": {"$gte": start}} if start else {}

    orders = []
    emails = {}
    async for doc in db.orders.find(query).sort("created_at", -1):
        owner_id = doc["user_id"]
        if owner_id not in emails:
            owner = await db.users.find_one({"_id": str_to_oid(owner_id)}, {"email": 1})
            emails[owner_id] = owner["email"] if owner else None
        orders.append(AdminOrderResponse(**with_id(doc), user_email=emails[owner_id]))
    return SuccessResponse(data=orders)

@router.get("/{order_id}", response_model=SuccessResponse[OrderResponse])
async def get_order(order_id: str, request: Request, user: dict = Depends(get_current_user)):
    order = await request.app.mongodb.orders.find_one({"_id": str_to_oid(order_id)})
    if not order:
        raise NotFoundException("Order not found")
    ensure_self_or_admin(user, order["user_id"])
    return SuccessResponse(data=OrderResponse(**with_id(order)))

@router.put("/{order_id}/deliver", response_model=SuccessResponse[OrderResponse])
async def mark_delivered(order_id: str, request: Request, admin: dict = Depends(require_admin)):
    db = request.app.mongodb
    oid = str_to_oid(order_id)
    order = await db.orders.find_one({"_id": oid})
    if not order:
        raise NotFoundException("Order not found")

    # Delivery is the only transition an order goes through after checkout
    if not order.get("is_delivered"):
        await db.orders.update_one(
            {"_id": oid},
            {"$set": {"is_delivered": True, "delivered_at": utcnow()}},
        )
        order = await db.orders.find_one({"_id": oid})
    return SuccessResponse(data=OrderResponse(**with_id(order)), message="Order marked as delivered")
