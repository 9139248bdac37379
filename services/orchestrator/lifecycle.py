"""
Order lifecycle orchestrator.

Coordinates the order store, the payment gateway and the notification
dispatcher to move an order through its states:

    create ─► request payment session ─► verify payment ─► advance status
                     └──────────── cancel / cancel and refund

Rules the operations below rely on:

* Payment truth lives in the gateway. An order becomes ``paid`` only after the
  gateway itself reports the session as paid; nothing the client sends is
  trusted for that.
* Every status change is a conditional update on the status the decision was
  made from, so at-least-once verification callbacks and double clicks apply a
  transition at most once.
* Gateway calls happen outside any open write and are bounded by a timeout.
  A failure leaves the order untouched and is safe to retry.
* Notifications are post-commit hooks. They run after the transition is
  durable and can never undo or fail it.
* Callers always get the order re-read after the write, never a stale copy.
"""
import asyncio
import time
from dataclasses import dataclass
from datetime import date
from functools import partial

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings
from shared.exceptions import (
    GatewayError,
    InvalidTransitionError,
    NotFoundError,
    PreconditionError,
    ValidationError,
)
from shared.money import quantize
from shared.observability import (
    gateway_call_duration_seconds,
    gateway_calls_total,
    order_transition_noops_total,
    order_transitions_total,
    refunds_in_flight,
)
from shared.security import Identity
from services.notification_service.dispatcher import Audience, NotificationDispatcher, TemplateKind
from services.order_service.models import DeliveryType, Order, OrderItem, OrderStatus
from services.order_service.repository import (
    DeliverySettingsRepository,
    OrderRepository,
    PickupLocationRepository,
)
from services.order_service.schemas import CheckoutRequest, OrderResponse, PickupDelivery
from services.payment_service.gateway import PaymentGateway, RefundResult, SessionHandle, SessionState
from services.payment_service.service import PaymentService
from services.product_service.service import ProductService

from .hooks import PostCommitHooks
from .transitions import AWAITING_PAYMENT, NOT_CANCELLED, check_advance, check_customer_cancel

logger = structlog.get_logger(__name__)


@dataclass
class VerificationResult:
    success: bool
    session_status: str
    message: str
    order: Order | None = None
    newly_paid: bool = False


@dataclass
class RefundOutcome:
    order: Order
    refund: RefundResult


class OrderLifecycle:
    def __init__(
        self,
        gateway: PaymentGateway,
        dispatcher: NotificationDispatcher,
        *,
        currency: str = settings.CURRENCY,
        site_url: str = settings.SITE_URL,
        gateway_timeout: float = settings.GATEWAY_TIMEOUT_SECONDS,
        pickup_opens=settings.PICKUP_OPENS,
        pickup_closes=settings.PICKUP_CLOSES,
        today=date.today,
    ):
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.currency = currency
        self.site_url = site_url.rstrip("/")
        self.gateway_timeout = gateway_timeout
        self.pickup_opens = pickup_opens
        self.pickup_closes = pickup_closes
        self.today = today

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_order(self, db: AsyncSession, data: CheckoutRequest, identity: Identity | None = None) -> Order:
        if not data.items:
            raise ValidationError("Cart is empty")

        await self._check_delivery(db, data)

        # Same product twice in the cart becomes one line
        quantities: dict[str, int] = {}
        for item in data.items:
            quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

        lines = await ProductService.price_cart(db, quantities)
        items = [
            # snapshot, decoupled from later price changes
            OrderItem(product_id=line.product_id, quantity=line.quantity, price_at_purchase=line.unit_price)
            for line in lines
        ]
        total = quantize(sum(line.total for line in lines))

        delivery = data.delivery
        contact = data.emergency_contact
        order = Order(
            user_id=identity.subject if identity else None,
            customer_name=data.customer_name,
            customer_email=data.customer_email,
            total_amount=total,
            delivery_type=delivery.delivery_type,
            status=(OrderStatus.PENDING_CASH if data.payment_method == "cash" else OrderStatus.PENDING).value,
            refund_in_flight=False,
            emergency_contact_name=contact.name if contact else None,
            emergency_contact_phone=contact.phone if contact else None,
            emergency_contact_email=contact.email if contact else None,
            items=items,
        )
        if isinstance(delivery, PickupDelivery):
            order.pickup_location_id = delivery.location_id
            order.pickup_date = delivery.pickup_date
            order.pickup_time = delivery.pickup_time
        else:
            order.shipping_street = delivery.street
            order.shipping_city = delivery.city
            order.shipping_zip = delivery.zip

        await OrderRepository.insert(db, order)
        order_transitions_total.labels(operation="create", to_status=order.status).inc()
        logger.info("order_created", order_id=order.id, total=str(total), status=order.status, items=len(items))

        order = await OrderRepository.get(db, order.id)
        snapshot = OrderResponse.model_validate(order)
        await PostCommitHooks().add(
            "notify_admins_order_received",
            partial(self.dispatcher.notify, Audience.ADMINS, TemplateKind.ORDER_RECEIVED, snapshot),
        ).run()
        return order

    async def _check_delivery(self, db: AsyncSession, data: CheckoutRequest) -> None:
        delivery = data.delivery
        delivery_settings = await DeliverySettingsRepository.get(db)
        enabled = {
            DeliveryType.SHIPPING: delivery_settings.shipping_enabled,
            DeliveryType.PICKUP: delivery_settings.pickup_enabled,
        }
        if not enabled[DeliveryType(delivery.delivery_type)]:
            raise ValidationError(f"Delivery type '{delivery.delivery_type}' is currently not offered")

        if isinstance(delivery, PickupDelivery):
            location = await PickupLocationRepository.get(db, delivery.location_id)
            if location is None or not location.is_active:
                raise ValidationError("Pickup location is not available")
            if delivery.pickup_date < self.today():
                raise ValidationError("Pickup date cannot be in the past")
            if not self.pickup_opens <= delivery.pickup_time <= self.pickup_closes:
                raise ValidationError(
                    f"Pickup time must be between {self.pickup_opens.strftime('%H:%M')} "
                    f"and {self.pickup_closes.strftime('%H:%M')}"
                )

    # ------------------------------------------------------------------
    # Payment
    # ------------------------------------------------------------------

    async def request_payment_session(self, db: AsyncSession, order_id: str, identity: Identity) -> SessionHandle:
        """Opens a hosted checkout session for a pending order. Also used to retry a payment."""
        order = await self._get_visible_order(db, order_id, identity)
        if order.status != OrderStatus.PENDING:
            raise InvalidTransitionError(f"Order is '{order.status}', only pending orders can be paid online")

        handle = await self._call_gateway(
            "create_session",
            self.gateway.create_session(order.id, quantize(order.total_amount), self.currency, f"{self.site_url}/orders"),
        )
        logger.info("payment_session_created", order_id=order.id, session_id=handle.session_id)
        return handle

    async def verify_payment(self, db: AsyncSession, session_id: str) -> VerificationResult:
        status = await self._call_gateway("get_session_status", self.gateway.get_session_status(session_id))

        if status.status != SessionState.PAID:
            logger.info("payment_not_completed", session_id=session_id, status=status.status.value)
            return VerificationResult(
                success=False, session_status=status.status.value, message="Payment not completed"
            )

        order_id = status.bound_order_id
        if not order_id:
            raise NotFoundError(f"Checkout session {session_id} is not bound to an order")

        applied = await OrderRepository.conditional_update(
            db,
            order_id,
            AWAITING_PAYMENT,
            {"status": OrderStatus.PAID, "external_payment_reference": status.payment_reference},
        )
        await db.commit()

        order = await OrderRepository.get(db, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        if not applied:
            if order.status == OrderStatus.CANCELLED:
                logger.warning(
                    "payment_for_cancelled_order",
                    order_id=order_id, session_id=session_id, payment_reference=status.payment_reference,
                )
                raise NotFoundError(f"No pending order {order_id} for checkout session {session_id}")
            # Replayed confirmation: already paid, nothing to do and nobody to notify again
            order_transition_noops_total.labels(operation="verify_payment").inc()
            logger.info("payment_already_verified", order_id=order_id, session_id=session_id, status=order.status)
            return VerificationResult(
                success=True, session_status=status.status.value,
                message="Payment already verified", order=order,
            )

        order_transitions_total.labels(operation="verify_payment", to_status=OrderStatus.PAID.value).inc()
        logger.info("payment_verified", order_id=order_id, session_id=session_id)

        snapshot = OrderResponse.model_validate(order)
        await (
            PostCommitHooks()
            .add("notify_admins_paid", partial(self.dispatcher.notify, Audience.ADMINS, TemplateKind.ORDER_RECEIVED, snapshot))
            .add("notify_customer_paid", partial(self.dispatcher.notify, Audience.CUSTOMER, TemplateKind.ORDER_RECEIVED, snapshot))
            .run()
        )
        return VerificationResult(
            success=True, session_status=status.status.value,
            message="Payment verified and order updated", order=order, newly_paid=True,
        )

    # ------------------------------------------------------------------
    # Back-office status changes
    # ------------------------------------------------------------------

    async def advance_status(self, db: AsyncSession, order_id: str, target: OrderStatus) -> Order:
        order = await OrderRepository.get(db, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")

        check_advance(order.status, target)
        target = OrderStatus(target)
        if order.status == target:
            return order

        previous = order.status
        applied = await OrderRepository.conditional_update(db, order_id, [previous], {"status": target})
        await db.commit()
        if not applied:
            order_transition_noops_total.labels(operation="advance_status").inc()
            raise InvalidTransitionError(f"Order {order_id} changed status concurrently; reload and retry")

        order_transitions_total.labels(operation="advance_status", to_status=target.value).inc()
        logger.info("order_status_advanced", order_id=order_id, from_status=previous, to_status=target.value)

        order = await OrderRepository.get(db, order_id)
        snapshot = OrderResponse.model_validate(order)
        await PostCommitHooks().add(
            "notify_customer_status",
            partial(self.dispatcher.notify, Audience.CUSTOMER, TemplateKind.STATUS_UPDATE, snapshot, new_status=target.value),
        ).run()
        return order

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    async def cancel_order(self, db: AsyncSession, order_id: str, identity: Identity) -> Order:
        """Customer cancellation of an order nobody has paid for yet. No gateway call."""
        order = await self._get_visible_order(db, order_id, identity)
        check_customer_cancel(order.status)

        applied = await OrderRepository.conditional_update(
            db, order_id, [order.status], {"status": OrderStatus.CANCELLED}
        )
        await db.commit()
        if not applied:
            order_transition_noops_total.labels(operation="cancel_order").inc()
            raise InvalidTransitionError(f"Order {order_id} changed status concurrently; reload and retry")

        order_transitions_total.labels(operation="cancel_order", to_status=OrderStatus.CANCELLED.value).inc()
        logger.info("order_cancelled", order_id=order_id, by=identity.subject)

        order = await OrderRepository.get(db, order_id)
        snapshot = OrderResponse.model_validate(order)
        await PostCommitHooks().add(
            "notify_customer_cancelled",
            partial(self.dispatcher.notify, Audience.CUSTOMER, TemplateKind.CANCELLATION, snapshot),
        ).run()
        return order

    async def cancel_and_refund(self, db: AsyncSession, order_id: str) -> RefundOutcome:
        order = await OrderRepository.get(db, order_id)
        if order is None:
            raise NotFoundError(f"Order {order_id} not found")
        if order.status == OrderStatus.CANCELLED:
            raise InvalidTransitionError("Order is already cancelled")
        if not order.external_payment_reference:
            raise PreconditionError("No payment information found for this order; nothing to refund")
        if order.refund_in_flight:
            raise PreconditionError("A refund for this order is already in progress")

        # Claim the refund before calling out so a concurrent second call cannot refund again
        claimed = await OrderRepository.conditional_update(
            db, order_id, NOT_CANCELLED, {"refund_in_flight": True}, Order.refund_in_flight.is_(False)
        )
        await db.commit()
        if not claimed:
            current = await OrderRepository.get(db, order_id)
            if current is not None and current.status == OrderStatus.CANCELLED:
                raise InvalidTransitionError("Order is already cancelled")
            raise PreconditionError("A refund for this order is already in progress")

        payment_reference = order.external_payment_reference
        amount = quantize(order.total_amount)
        refunds_in_flight.inc()
        try:
            refund = await self._call_gateway(
                "refund", self.gateway.refund(payment_reference, amount, idempotency_key=f"refund-{order_id}")
            )
        except BaseException:
            # Covers cancellation of the request too: the claim must not outlive it
            await asyncio.shield(self._release_refund_claim(db, order_id))
            raise
        finally:
            refunds_in_flight.dec()

        PaymentService.record_refund(db, order_id, payment_reference, refund)
        applied = await OrderRepository.conditional_update(
            db,
            order_id,
            NOT_CANCELLED,
            {"status": OrderStatus.CANCELLED, "refund_in_flight": False},
            Order.refund_in_flight.is_(True),
        )
        await db.commit()
        if not applied:
            logger.critical(
                "refund_issued_but_order_not_cancelled",
                order_id=order_id, refund_id=refund.refund_id,
                detail="Manual intervention may be required",
            )
        else:
            order_transitions_total.labels(operation="cancel_and_refund", to_status=OrderStatus.CANCELLED.value).inc()
        logger.info("order_refunded", order_id=order_id, refund_id=refund.refund_id, amount=str(refund.amount))

        order = await OrderRepository.get(db, order_id)
        snapshot = OrderResponse.model_validate(order)
        await PostCommitHooks().add(
            "notify_customer_refunded",
            partial(
                self.dispatcher.notify, Audience.CUSTOMER, TemplateKind.CANCELLATION, snapshot,
                refund_amount=refund.amount,
            ),
        ).run()
        return RefundOutcome(order=order, refund=refund)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_visible_order(self, db: AsyncSession, order_id: str, identity: Identity) -> Order:
        order = await OrderRepository.get(db, order_id)
        if order is None or not (identity.is_admin or order.user_id == identity.subject):
            raise NotFoundError(f"Order {order_id} not found")
        return order

    async def _release_refund_claim(self, db: AsyncSession, order_id: str) -> None:
        """Leaves the order exactly as it was before the refund was attempted."""
        await OrderRepository.conditional_update(db, order_id, NOT_CANCELLED, {"refund_in_flight": False})
        await db.commit()
        logger.info("refund_claim_released", order_id=order_id)

    async def _call_gateway(self, operation: str, call):
        """Awaits a gateway coroutine under the configured timeout, with metrics."""
        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(call, timeout=self.gateway_timeout)
        except asyncio.TimeoutError as e:
            gateway_calls_total.labels(operation=operation, outcome="timeout").inc()
            logger.warning("gateway_timeout", operation=operation, timeout=self.gateway_timeout)
            raise GatewayError(f"{operation} timed out after {self.gateway_timeout}s") from e
        except GatewayError as e:
            gateway_calls_total.labels(operation=operation, outcome="error").inc()
            logger.warning("gateway_error", operation=operation, reason=e.reason)
            raise
        finally:
            gateway_call_duration_seconds.labels(operation=operation).observe(time.perf_counter() - started)

        gateway_calls_total.labels(operation=operation, outcome="success").inc()
        return result
