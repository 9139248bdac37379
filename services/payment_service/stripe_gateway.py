"""Stripe Checkout adapter.

Talks to the Stripe REST API directly with ``httpx``: form-encoded requests,
bearer secret key, integer minor-unit amounts. Every request is bounded by a
timeout; timeouts and transport failures become ``GatewayError``.
"""
import hashlib
import hmac
import time

import httpx
import structlog

from shared.exceptions import GatewayError, NotFoundError
from shared.money import from_minor_units, to_minor_units

from .gateway import PaymentGateway, RefundResult, SessionHandle, SessionState, SessionStatus

logger = structlog.get_logger(__name__)

PAID_PAYMENT_STATUSES = ("paid", "no_payment_required")
FAILED_REFUND_STATUSES = ("failed", "canceled")
WEBHOOK_TOLERANCE_SECONDS = 300


class StripeGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str,
        webhook_secret: str = "",
        *,
        base_url: str = "https://api.stripe.com",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webhook_secret = webhook_secret
        self._client_kwargs = {
            "base_url": base_url,
            "headers": {"Authorization": f"Bearer {secret_key}"},
            "timeout": timeout,
        }
        if transport is not None:
            self._client_kwargs["transport"] = transport

    async def _request(self, method: str, path: str, *, data: dict | None = None, headers: dict | None = None) -> dict:
        try:
            async with httpx.AsyncClient(**self._client_kwargs) as client:
                resp = await client.request(method, path, data=data, headers=headers)
        except httpx.TimeoutException as e:
            raise GatewayError(f"Stripe request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise GatewayError(f"Stripe request failed: {e}") from e

        try:
            payload = resp.json()
        except ValueError:
            payload = {}

        if resp.status_code >= 400:
            error = payload.get("error") or {}
            reason = error.get("message") or resp.text or f"HTTP {resp.status_code}"
            if resp.status_code == 404 and error.get("code") == "resource_missing":
                raise NotFoundError(reason)
            raise GatewayError(reason, provider_status=resp.status_code)
        return payload

    async def create_session(self, order_id, amount, currency, success_ref) -> SessionHandle:
        separator = "&" if "?" in success_ref else "?"
        data = {
            "mode": "payment",
            "success_url": f"{success_ref}{separator}session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": success_ref,
            "client_reference_id": order_id,
            "metadata[order_id]": order_id,
            "payment_intent_data[metadata][order_id]": order_id,
            "line_items[0][quantity]": "1",
            "line_items[0][price_data][currency]": currency,
            "line_items[0][price_data][unit_amount]": str(to_minor_units(amount)),
            "line_items[0][price_data][product_data][name]": f"Order #{order_id[:8]}",
        }
        payload = await self._request("POST", "/v1/checkout/sessions", data=data)
        logger.info("stripe_session_created", order_id=order_id, session_id=payload.get("id"))
        return SessionHandle(session_id=payload["id"], url=payload["url"])

    async def get_session_status(self, session_id) -> SessionStatus:
        payload = await self._request("GET", f"/v1/checkout/sessions/{session_id}")

        if payload.get("payment_status") in PAID_PAYMENT_STATUSES:
            state = SessionState.PAID
        elif payload.get("status") == "expired":
            state = SessionState.EXPIRED
        else:
            state = SessionState.UNPAID

        metadata = payload.get("metadata") or {}
        payment_intent = payload.get("payment_intent")
        if isinstance(payment_intent, dict):
            payment_intent = payment_intent.get("id")

        return SessionStatus(
            status=state,
            bound_order_id=metadata.get("order_id") or payload.get("client_reference_id"),
            payment_reference=payment_intent,
        )

    async def refund(self, payment_reference, amount, idempotency_key) -> RefundResult:
        data = {
            "payment_intent": payment_reference,
            "amount": str(to_minor_units(amount)),
            "reason": "requested_by_customer",
        }
        payload = await self._request(
            "POST", "/v1/refunds", data=data, headers={"Idempotency-Key": idempotency_key}
        )
        if payload.get("status") in FAILED_REFUND_STATUSES:
            raise GatewayError(payload.get("failure_reason") or f"Refund {payload.get('status')}")

        return RefundResult(
            refund_id=payload["id"],
            amount=from_minor_units(payload["amount"]),
            currency=payload.get("currency", ""),
            status=payload.get("status", ""),
        )

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Checks a ``Stripe-Signature`` header (``t=<ts>,v1=<hmac>``) against the webhook secret."""
        if not self.webhook_secret or not signature:
            return False

        timestamp = None
        candidates = []
        for part in signature.split(","):
            key, _, value = part.strip().partition("=")
            if key == "t":
                timestamp = value
            elif key == "v1":
                candidates.append(value)
        if timestamp is None or not candidates:
            return False

        try:
            if abs(time.time() - int(timestamp)) > WEBHOOK_TOLERANCE_SECONDS:
                return False
        except ValueError:
            return False

        signed = f"{timestamp}.".encode() + payload
        expected = hmac.new(self.webhook_secret.encode(), signed, hashlib.sha256).hexdigest()
        return any(hmac.compare_digest(expected, candidate) for candidate in candidates)
