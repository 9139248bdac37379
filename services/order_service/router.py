from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import Identity, get_current_identity, limiter, require_admin
from services.orchestrator.dependencies import get_lifecycle
from services.orchestrator.lifecycle import OrderLifecycle
from services.payment_service.schemas import CancelAndRefundResponse, RefundResponse

from .models import OrderStatus
from .schemas import (
    AdvanceStatusRequest,
    CheckoutRequest,
    DeliverySettingsSchema,
    OrderResponse,
    PaymentSessionResponse,
    PickupLocationResponse,
)
from .service import OrderService

router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "order", "status": "running"}


# --- Checkout options ---

@public_router.get("/pickup-locations", response_model=list[PickupLocationResponse])
async def list_pickup_locations(db: AsyncSession = Depends(get_db)):
    return await OrderService.list_pickup_locations(db)

@public_router.get("/delivery-settings", response_model=DeliverySettingsSchema)
async def get_delivery_settings(db: AsyncSession = Depends(get_db)):
    return await OrderService.get_delivery_settings(db)

@router.put("/delivery-settings", response_model=DeliverySettingsSchema)
async def update_delivery_settings(
    payload: DeliverySettingsSchema,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    return await OrderService.update_delivery_settings(db, payload)


# --- Customer ---

@router.post("/", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")  # Rate limit: 10 checkouts per minute per user/IP
async def checkout(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.create_order(db, payload, identity)

@router.get("/mine", response_model=list[OrderResponse])
async def list_my_orders(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await OrderService.list_my_orders(db, identity)

@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await OrderService.get_order_for(db, order_id, identity)

@router.post("/{order_id}/payment-session", response_model=PaymentSessionResponse)
async def create_payment_session(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    handle = await lifecycle.request_payment_session(db, order_id, identity)
    return PaymentSessionResponse(order_id=order_id, session_id=handle.session_id, url=handle.url)

@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.cancel_order(db, order_id, identity)


# --- Back-office ---

@router.get("/", response_model=list[OrderResponse])
async def list_orders(
    status: OrderStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    return await OrderService.list_orders(db, status.value if status else None)

@router.post("/{order_id}/status", response_model=OrderResponse)
async def advance_status(
    order_id: str,
    payload: AdvanceStatusRequest,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    return await lifecycle.advance_status(db, order_id, payload.status)

@router.post("/{order_id}/refund", response_model=CancelAndRefundResponse)
async def cancel_and_refund(
    order_id: str,
    db: AsyncSession = Depends(get_db),
    admin: Identity = Depends(require_admin),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    outcome = await lifecycle.cancel_and_refund(db, order_id)
    return CancelAndRefundResponse(
        order=OrderResponse.model_validate(outcome.order),
        refund=RefundResponse(
            refund_id=outcome.refund.refund_id,
            amount=outcome.refund.amount,
            currency=outcome.refund.currency,
            status=outcome.refund.status,
        ),
    )
