from typing import List
from fastapi import APIRouter, Depends, Request, status

from greenleaf.auth.service import IdentityService
from greenleaf.catalog.store import CatalogStore
from greenleaf.orders.schemas import OrderResponse
from greenleaf.payments.reconciliation import OrderReconciliationService
from greenleaf.payments.schemas import (
    CreateIntentRequest, PaymentIntentResponse, VerifyPaymentRequest,
    CodOrderRequest, PaymentResponse,
)
from greenleaf.shared.exceptions import ValidationException
from greenleaf.shared.security_config import limiter
from greenleaf.shared.utils import SuccessResponse, get_current_user, ensure_self_or_admin, with_id

router = APIRouter(prefix="/api/payment", tags=["payment"])


def get_reconciliation(request: Request) -> OrderReconciliationService:
    app = request.app
    db = app.mongodb
    return OrderReconciliationService(
        db,
        app.state.gateway,
        app.state.payment_config,
        identity=IdentityService(db, app.state.settings, app.state.mailer),
        catalog=CatalogStore(db),
    )


@router.post("/create-order", response_model=SuccessResponse[PaymentIntentResponse])
@limiter.limit("10/minute")
async def create_order(
    body: CreateIntentRequest,
    request: Request,
    user: dict = Depends(get_current_user),
    service: OrderReconciliationService = Depends(get_reconciliation),
):
    intent = await service.create_payment_intent(body.amount)
    return SuccessResponse(data=PaymentIntentResponse(
        order_id=intent.intent_id,
        amount=intent.amount,
        currency=intent.currency,
    ))

@router.post("/verify", response_model=SuccessResponse[OrderResponse])
@limiter.limit("10/minute")
async def verify_payment(
    body: VerifyPaymentRequest,
    request: Request,
    user: dict = Depends(get_current_user),
    service: OrderReconciliationService = Depends(get_reconciliation),
):
    ensure_self_or_admin(user, body.user_id)
    payment = body.payment_data
    if body.order_id and payment.razorpay_order_id and body.order_id != payment.razorpay_order_id:
        raise ValidationException("orderId does not match the gateway order")

    order = await service.verify_and_reconcile(
        user_id=body.user_id,
        gateway_order_id=payment.razorpay_order_id,
        gateway_payment_id=payment.razorpay_payment_id,
        gateway_signature=payment.razorpay_signature,
        declared_amount=body.amount,
        cart_items=[item.model_dump() for item in body.cart_items],
        payment_method=body.payment_method,
    )
    return SuccessResponse(data=OrderResponse(**with_id(order)), message="Order saved successfully")

@router.post("/place-cod-order", response_model=SuccessResponse[OrderResponse], status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
async def place_cod_order(
    body: CodOrderRequest,
    request: Request,
    user: dict = Depends(get_current_user),
    service: OrderReconciliationService = Depends(get_reconciliation),
):
    ensure_self_or_admin(user, body.user_id)
    order = await service.place_cash_on_delivery(
        body.user_id,
        [item.model_dump() for item in body.cart_items],
        body.total_amount,
        idempotency_key=body.idempotency_key,
    )
    return SuccessResponse(data=OrderResponse(**with_id(order)), message="COD Order placed successfully")

@router.get("/history", response_model=SuccessResponse[List[PaymentResponse]])
async def payment_history(request: Request, user: dict = Depends(get_current_user)):
    cursor = request.app.mongodb.payments.find({"user_id": user["sub"]}).sort("created_at", -1)
    payments = [PaymentResponse(**with_id(doc)) async for doc in cursor]
    return SuccessResponse(data=payments)
