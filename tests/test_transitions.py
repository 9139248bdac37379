import pytest

from shared.exceptions import InvalidTransitionError
from services.order_service.models import OrderStatus
from services.orchestrator.transitions import check_advance, check_customer_cancel


class TestCheckAdvance:
    @pytest.mark.parametrize(
        "current, target",
        [
            ("pending_cash", "paid"),
            ("paid", "confirmed"),
            ("confirmed", "preparing"),
            ("preparing", "ready"),
            ("ready", "completed"),
            ("paid", "shipped"),
            ("shipped", "delivered"),
            ("delivered", "completed"),
            ("paid", "paid"),
        ],
    )
    def test_allowed(self, current, target):
        check_advance(current, target)

    def test_accepts_enum_members(self):
        check_advance(OrderStatus.PAID, OrderStatus.PROCESSING)

    @pytest.mark.parametrize("target", ["paid", "confirmed", "completed"])
    def test_cancelled_orders_are_terminal(self, target):
        with pytest.raises(InvalidTransitionError):
            check_advance("cancelled", target)

    @pytest.mark.parametrize("target", ["cancelled", "pending", "pending_cash"])
    def test_targets_outside_the_forward_set_are_rejected(self, target):
        with pytest.raises(InvalidTransitionError):
            check_advance("paid", target)

    @pytest.mark.parametrize("target", ["paid", "confirmed"])
    def test_online_payment_cannot_be_marked_paid_by_hand(self, target):
        with pytest.raises(InvalidTransitionError, match="online payment"):
            check_advance("pending", target)

    def test_unknown_status_is_rejected(self):
        with pytest.raises(ValueError):
            check_advance("paid", "teleported")


class TestCheckCustomerCancel:
    @pytest.mark.parametrize("current", ["pending", "pending_cash"])
    def test_unpaid_orders_can_be_cancelled(self, current):
        check_customer_cancel(current)

    @pytest.mark.parametrize("current", ["paid", "confirmed", "shipped", "cancelled"])
    def test_everything_else_is_rejected(self, current):
        with pytest.raises(InvalidTransitionError):
            check_customer_cancel(current)
