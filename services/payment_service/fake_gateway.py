"""Configurable fake payment gateway for development and testing.

Simulates hosted checkout sessions in memory without any external calls. It
can be told to fail, to slow down, or to report a session as paid, unpaid or
expired, and it records every call it receives.
"""
import asyncio
from uuid import uuid4

from shared.exceptions import GatewayError, NotFoundError
from shared.money import quantize

from .gateway import PaymentGateway, RefundResult, SessionHandle, SessionState, SessionStatus


class FakeGateway(PaymentGateway):
    """In-memory payment gateway."""

    def __init__(self, currency: str = "eur") -> None:
        self.currency = currency
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.delay_seconds: float = 0.0
        self.webhook_signature: str = "test-signature"
        self.sessions: dict[str, dict] = {}
        self.refunds: dict[str, RefundResult] = {}
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined", delay_seconds: float = 0.0) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds

    def complete_session(self, session_id: str, payment_reference: str | None = None) -> None:
        """Simulates the customer paying on the hosted checkout page."""
        session = self.sessions[session_id]
        session["status"] = SessionState.PAID
        session["payment_reference"] = payment_reference or f"fake_pi_{uuid4().hex[:12]}"

    def expire_session(self, session_id: str) -> None:
        self.sessions[session_id]["status"] = SessionState.EXPIRED

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    async def _simulate(self) -> None:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

    async def create_session(self, order_id, amount, currency, success_ref) -> SessionHandle:
        self.calls.append({
            "method": "create_session",
            "order_id": order_id,
            "amount": quantize(amount),
            "currency": currency,
            "success_ref": success_ref,
        })
        await self._simulate()

        session_id = f"cs_fake_{uuid4().hex[:16]}"
        self.sessions[session_id] = {
            "order_id": order_id,
            "amount": quantize(amount),
            "currency": currency,
            "status": SessionState.UNPAID,
            "payment_reference": None,
        }
        return SessionHandle(session_id=session_id, url=f"https://checkout.fake/pay/{session_id}")

    async def get_session_status(self, session_id) -> SessionStatus:
        self.calls.append({"method": "get_session_status", "session_id": session_id})
        await self._simulate()

        session = self.sessions.get(session_id)
        if session is None:
            raise NotFoundError(f"No such checkout session: {session_id}")
        return SessionStatus(
            status=session["status"],
            bound_order_id=session["order_id"],
            payment_reference=session["payment_reference"],
        )

    async def refund(self, payment_reference, amount, idempotency_key) -> RefundResult:
        self.calls.append({
            "method": "refund",
            "payment_reference": payment_reference,
            "amount": quantize(amount),
            "idempotency_key": idempotency_key,
        })
        await self._simulate()

        # Same idempotency key, same refund
        if idempotency_key in self.refunds:
            return self.refunds[idempotency_key]
        result = RefundResult(
            refund_id=f"fake_re_{uuid4().hex[:12]}",
            amount=quantize(amount),
            currency=self.currency,
            status="succeeded",
        )
        self.refunds[idempotency_key] = result
        return result

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:  # noqa: ARG002
        return signature == self.webhook_signature
