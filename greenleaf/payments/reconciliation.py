"""
Order reconciliation: turns a cart snapshot plus a payment outcome into a
durable order.

Online checkout::

    create_payment_intent -> (customer pays at the gateway) ->
    verify_and_reconcile: verify signature -> record payment ->
    enrich lines -> persist order -> delete cart

Cash on delivery skips the gateway and the signature check.

Lines are re-priced from the catalog at checkout; client-supplied names and
prices are ignored. A line whose product no longer exists is dropped, and
the order is then charged the total of the surviving lines.

Post-condition of a successful checkout: one order exists and the cart is
gone. Unless ``PaymentConfig.use_transactions`` is set (MongoDB replica set
required), "persist order" and "delete cart" are two independent writes and a
failure between them leaves the order persisted with the cart still present.
There is no compensation for that case.
"""
import logging
import time
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, List

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from greenleaf.catalog.store import CatalogStore, effective_price
from greenleaf.orders.models import OrderDB, OrderItemDB
from greenleaf.payments.gateway import PaymentGateway, PaymentIntent, verify_signature
from greenleaf.payments.models import PaymentDB
from greenleaf.shared.exceptions import (
    AmountMismatchException, EmptyCartException, ForbiddenException, InvalidAmountException,
    NoValidItemsException, SignatureMismatchException, UserNotFoundException,
    ValidationException,
)
from greenleaf.shared.utils import utcnow

logger = logging.getLogger(__name__)

ONLINE = "online"
CASH_ON_DELIVERY = "COD"
AMOUNT_TOLERANCE = Decimal("0.01")


@dataclass
class PaymentConfig:
    signing_secret: str
    currency: str = "INR"
    use_transactions: bool = False


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def order_total(lines: List[dict]) -> Decimal:
    return sum((_money(effective_price(line)) * line["quantity"] for line in lines), Decimal("0"))


class OrderReconciliationService:
    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        gateway: PaymentGateway,
        config: PaymentConfig,
        identity,
        catalog: CatalogStore,
    ):
        self.db = db
        self.gateway = gateway
        self.config = config
        # anything with ``async get_user(user_id)`` raising UserNotFoundException
        self.identity = identity
        self.catalog = catalog

    async def create_payment_intent(self, amount) -> PaymentIntent:
        if amount is None or Decimal(str(amount)) <= 0:
            raise InvalidAmountException()

        minor_units = int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        receipt = f"receipt_{int(time.time() * 1000)}"
        intent = await self.gateway.create_intent(minor_units, self.config.currency, receipt)
        logger.info(f"Payment intent {intent.intent_id} created for {minor_units} {intent.currency}")
        return intent

    async def verify_and_reconcile(
        self,
        user_id: str,
        gateway_order_id: Optional[str],
        gateway_payment_id: Optional[str],
        gateway_signature: Optional[str],
        declared_amount,
        cart_items: List[dict],
        payment_method: str = ONLINE,
    ) -> dict:
        if not cart_items:
            raise EmptyCartException()

        if payment_method == CASH_ON_DELIVERY:
            return await self.place_cash_on_delivery(user_id, cart_items, declared_amount)
        if payment_method != ONLINE:
            raise ValidationException(f"Unsupported payment method: {payment_method}")

        if not gateway_order_id or not gateway_payment_id or not gateway_signature:
            raise ValidationException("Missing Razorpay payment details")

        if not verify_signature(self.config.signing_secret, gateway_order_id, gateway_payment_id, gateway_signature):
            logger.warning(
                "Payment signature mismatch",
                extra={"user_id": user_id, "order_id": gateway_order_id, "payment_id": gateway_payment_id},
            )
            raise SignatureMismatchException()
        logger.info("Payment signature verified", extra={"user_id": user_id, "payment_id": gateway_payment_id})

        # A retried confirmation must not produce a second order
        existing = await self.db.orders.find_one({"razorpay_payment_id": gateway_payment_id})
        if existing:
            if existing["user_id"] != user_id:
                logger.warning(
                    "Payment already reconciled for another user",
                    extra={"user_id": user_id, "payment_id": gateway_payment_id},
                )
                raise ForbiddenException("Payment belongs to another user")
            logger.info(f"Payment {gateway_payment_id} already reconciled into order {existing['_id']}")
            return existing

        user = await self._load_user(user_id)
        await self._record_payment(user_id, gateway_order_id, gateway_payment_id, declared_amount)

        lines = await self._enrich(cart_items)
        total = self._check_total(lines, declared_amount, dropped=len(cart_items) - len(lines))

        order = OrderDB(
            user_id=user_id,
            user_name=user["name"],
            items=[OrderItemDB(**line) for line in lines],
            total_amount=float(total),
            payment_method=ONLINE,
            razorpay_order_id=gateway_order_id,
            razorpay_payment_id=gateway_payment_id,
            razorpay_signature=gateway_signature,
            status="completed",
        )
        return await self._persist_order_and_clear_cart(order)

    async def place_cash_on_delivery(
        self,
        user_id: str,
        cart_items: List[dict],
        total_amount,
        idempotency_key: Optional[str] = None,
    ) -> dict:
        if not cart_items:
            raise EmptyCartException()
        if total_amount is None:
            raise ValidationException("Missing required order details")

        user = await self._load_user(user_id)

        if idempotency_key:
            existing = await self.db.orders.find_one({"user_id": user_id, "idempotency_key": idempotency_key})
            if existing:
                logger.info(f"Replayed checkout {idempotency_key} for user {user_id}")
                return existing

        lines = await self._enrich(cart_items)
        total = self._check_total(lines, total_amount, dropped=len(cart_items) - len(lines))

        order = OrderDB(
            user_id=user_id,
            user_name=user["name"],
            items=[OrderItemDB(**line) for line in lines],
            total_amount=float(total),
            payment_method=CASH_ON_DELIVERY,
            status="pending",
            idempotency_key=idempotency_key,
        )
        return await self._persist_order_and_clear_cart(order)

    async def _load_user(self, user_id: str) -> dict:
        if not user_id or not ObjectId.is_valid(user_id):
            raise UserNotFoundException()
        return await self.identity.get_user(user_id)

    async def _record_payment(self, user_id: str, order_id: str, payment_id: str, amount) -> None:
        payment = PaymentDB(
            user_id=user_id,
            order_id=order_id,
            payment_id=payment_id,
            amount=float(_money(amount or 0)),
            status="Success",
        )
        # keyed on payment_id so a retry after a crash does not duplicate it
        await self.db.payments.update_one(
            {"payment_id": payment_id},
            {"$setOnInsert": payment.model_dump(by_alias=True, exclude={"id"})},
            upsert=True,
        )
        logger.info(f"Payment {payment_id} recorded", extra={"user_id": user_id, "payment_id": payment_id})

    async def _enrich(self, cart_items: List[dict]) -> List[dict]:
        lines = []
        for item in cart_items:
            product_id = item.get("product_id")
            product = None
            if product_id and ObjectId.is_valid(product_id):
                product = await self.catalog.get_product(product_id)
            if not product:
                logger.warning(f"Dropping cart line for missing product {product_id}")
                continue

            images = product.get("images") or []
            lines.append({
                "product_id": str(product["_id"]),
                "name": product["name"],
                "price": product["price"],
                "discount_price": product.get("discount_price", 0),
                "image": images[0].get("url", "") if images else "",
                "quantity": item["quantity"],
            })

        if not lines:
            raise NoValidItemsException()
        return lines

    def _check_total(self, lines: List[dict], declared_amount, dropped: int = 0) -> Decimal:
        total = order_total(lines)
        if declared_amount is None or abs(_money(declared_amount) - total) <= AMOUNT_TOLERANCE:
            return total

        # the declared amount still includes the dropped lines
        if dropped:
            logger.warning(
                f"Declared amount {declared_amount} differs from total {total} "
                f"after dropping {dropped} line(s); keeping the computed total"
            )
            return total
        raise AmountMismatchException(
            f"Declared amount {declared_amount} does not match cart total {total}"
        )

    async def _persist_order_and_clear_cart(self, order: OrderDB) -> dict:
        order_doc = order.model_dump(by_alias=True, exclude={"id"})

        if self.config.use_transactions:
            async with await self.db.client.start_session() as session:
                async with session.start_transaction():
                    result = await self.db.orders.insert_one(order_doc, session=session)
                    await self.db.carts.delete_one({"user_id": order.user_id}, session=session)
        else:
            result = await self.db.orders.insert_one(order_doc)
            logger.info(f"Order {result.inserted_id} persisted", extra={"user_id": order.user_id})
            await self.db.carts.delete_one({"user_id": order.user_id})

        logger.info(f"Cart cleared after order {result.inserted_id}", extra={"user_id": order.user_id})
        return await self.db.orders.find_one({"_id": result.inserted_id})
