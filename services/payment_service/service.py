import json

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.exceptions import NotFoundError, ValidationError

from .gateway import RefundResult
from .models import RefundRecord
from .repository import RefundRepository

logger = structlog.get_logger(__name__)

# Provider events that mean "a checkout session may now be paid"
PAYMENT_EVENTS = (
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
)

class PaymentService:
    @staticmethod
    def record_refund(db: AsyncSession, order_id: str, payment_reference: str, result: RefundResult) -> RefundRecord:
        refund = RefundRecord(
            order_id=order_id,
            payment_reference=payment_reference,
            provider_refund_id=result.refund_id,
            amount=result.amount,
            currency=result.currency,
            status=result.status,
        )
        return RefundRepository.add(db, refund)

    @staticmethod
    async def list_refunds(db: AsyncSession, order_id: str):
        return await RefundRepository.list_for_order(db, order_id)

    @staticmethod
    async def handle_webhook_event(db: AsyncSession, lifecycle, payload: bytes) -> bool:
        """
        Routes a verified provider event. Only payment events trigger verification;
        the provider may deliver the same event several times, which is harmless
        because verification is idempotent. Returns True if the event was acted on.
        """
        try:
            event = json.loads(payload)
            event_type = event["type"]
        except (ValueError, KeyError, TypeError) as e:
            raise ValidationError(f"Malformed webhook payload: {e}") from e

        if event_type not in PAYMENT_EVENTS:
            logger.info("webhook_ignored", event_type=event_type)
            return False

        session_id = (event.get("data") or {}).get("object", {}).get("id")
        if not session_id:
            raise ValidationError("Webhook event carries no checkout session id")

        try:
            result = await lifecycle.verify_payment(db, session_id)
        except NotFoundError as e:
            # Redelivery cannot change the outcome, so the event is acknowledged
            logger.warning(
                "webhook_session_without_payable_order",
                event_type=event_type, session_id=session_id, reason=str(e),
            )
            return False
        logger.info("webhook_processed", event_type=event_type, session_id=session_id, success=result.success)
        return True
