from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security import limiter
from services.orchestrator.dependencies import get_lifecycle
from services.orchestrator.lifecycle import OrderLifecycle

from services.order_service.schemas import OrderResponse

from .schemas import VerifyPaymentRequest, VerifyPaymentResponse, WebhookAck
from .service import PaymentService

# Payment truth comes from the provider, never from the caller: both endpoints
# only hand over an opaque session id that is re-checked against the gateway.
router = APIRouter()
public_router = APIRouter()  # For any public endpoints (e.g. health check)

@public_router.get("/health", include_in_schema=False)
async def health_check():
    return {"service": "payment", "status": "running"}


@router.post("/verify", response_model=VerifyPaymentResponse)
@limiter.limit("30/minute")
async def verify_payment(
    request: Request,                          # REQUIRED: slowapi needs this to check IP/Headers
    payload: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    result = await lifecycle.verify_payment(db, payload.session_id)
    return VerifyPaymentResponse(
        success=result.success,
        status=result.session_status,
        message=result.message,
        order=OrderResponse.model_validate(result.order) if result.order is not None else None,
    )


@router.post("/webhook", response_model=WebhookAck)
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header(default=""),
    db: AsyncSession = Depends(get_db),
    lifecycle: OrderLifecycle = Depends(get_lifecycle),
):
    body = await request.body()
    if not lifecycle.gateway.verify_webhook_signature(body, stripe_signature):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook signature")

    handled = await PaymentService.handle_webhook_event(db, lifecycle, body)
    return WebhookAck(received=True, handled=handled)
