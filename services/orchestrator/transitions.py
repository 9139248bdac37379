"""
Order status rules.

    pending ──(verified payment)──► paid ─► confirmed ─► preparing ─► ready|processing
    pending_cash ──(admin)──► paid …        ─► shipped|delivered ─► completed
    any non-cancelled status ──► cancelled (terminal)
"""
from shared.exceptions import InvalidTransitionError
from services.order_service.models import OrderStatus

# Orders whose payment has not been captured yet
AWAITING_PAYMENT = frozenset({OrderStatus.PENDING, OrderStatus.PENDING_CASH})

# Targets an admin may set through AdvanceStatus
FORWARD_STATUSES = frozenset({
    OrderStatus.PAID,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
})

# Everything that can still be cancelled
NOT_CANCELLED = frozenset(OrderStatus) - {OrderStatus.CANCELLED}

CUSTOMER_CANCELLABLE = AWAITING_PAYMENT


def check_advance(current: str, target: str) -> None:
    """Raises InvalidTransitionError unless an admin may move an order from ``current`` to ``target``."""
    current = OrderStatus(current)
    target = OrderStatus(target)

    if current == OrderStatus.CANCELLED:
        raise InvalidTransitionError("Cancelled orders cannot change status")
    if target not in FORWARD_STATUSES:
        raise InvalidTransitionError(
            f"'{target.value}' cannot be set directly; use the cancellation endpoints"
            if target == OrderStatus.CANCELLED
            else f"'{target.value}' is not a status an admin can set"
        )
    # A card order leaves 'pending' only through verify_payment, so every paid card
    # order carries the gateway's payment reference and stays refundable.
    # Cash orders use 'pending_cash' and are marked paid here.
    if current == OrderStatus.PENDING:
        raise InvalidTransitionError("Order is awaiting online payment; it moves to 'paid' only after verification")


def check_customer_cancel(current: str) -> None:
    if OrderStatus(current) not in CUSTOMER_CANCELLABLE:
        raise InvalidTransitionError(
            f"Only unpaid orders can be cancelled by the customer (status is '{current}')"
        )
