"""Payment gateway port.

The contract every payment provider adapter implements. The orchestrator only
talks to this interface, so the Stripe adapter and the in-memory fake are
interchangeable. Every method may raise ``GatewayError`` carrying the
provider's raw reason.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum


class SessionState(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    EXPIRED = "expired"


@dataclass(frozen=True)
class SessionHandle:
    session_id: str
    url: str


@dataclass(frozen=True)
class SessionStatus:
    status: SessionState
    bound_order_id: str | None = None
    payment_reference: str | None = None


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    amount: Decimal
    currency: str
    status: str


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    async def create_session(
        self,
        order_id: str,
        amount: Decimal,
        currency: str,
        success_ref: str,
    ) -> SessionHandle:
        """Create a hosted checkout session bound to ``order_id``."""
        ...

    @abstractmethod
    async def get_session_status(self, session_id: str) -> SessionStatus:
        """Return the provider's view of a checkout session."""
        ...

    @abstractmethod
    async def refund(
        self,
        payment_reference: str,
        amount: Decimal,
        idempotency_key: str,
    ) -> RefundResult:
        """Refund a captured payment. Repeating the same idempotency key must not refund twice."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Verify that a webhook payload is authentically from the provider."""
        ...
