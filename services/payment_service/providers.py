"""Payment gateway factory.

get_gateway() builds the configured implementation once per process:
- StripeGateway when STRIPE_SECRET_KEY is configured
- FakeGateway otherwise (development and testing)
"""

import structlog

from shared.config import settings

from .fake_gateway import FakeGateway
from .gateway import PaymentGateway
from .stripe_gateway import StripeGateway

logger = structlog.get_logger(__name__)

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building the configured one on first use."""
    global _current_gateway
    if _current_gateway is None:
        if settings.STRIPE_SECRET_KEY:
            _current_gateway = StripeGateway(
                settings.STRIPE_SECRET_KEY,
                settings.STRIPE_WEBHOOK_SECRET,
                base_url=settings.STRIPE_API_URL,
                timeout=settings.GATEWAY_TIMEOUT_SECONDS,
            )
        else:
            logger.warning("payment_gateway_fake", reason="STRIPE_SECRET_KEY is not set")
            _current_gateway = FakeGateway(currency=settings.CURRENCY)
    return _current_gateway
