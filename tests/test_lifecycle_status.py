import pytest

from shared.exceptions import InvalidTransitionError, NotFoundError
from services.order_service.models import OrderStatus
from services.order_service.repository import OrderRepository


class TestAdvanceStatus:
    async def test_cash_order_moves_forward(self, db, lifecycle, place_order, sender):
        order = await place_order(payment_method="cash")
        sender.messages.clear()

        paid = await lifecycle.advance_status(db, order.id, OrderStatus.PAID)
        confirmed = await lifecycle.advance_status(db, order.id, OrderStatus.CONFIRMED)

        assert paid.status == "paid"
        assert confirmed.status == "confirmed"
        assert sender.subjects() == [
            f"Order Update: Payment Confirmed - #{order.id[:8]}",
            f"Order Update: Order Confirmed - #{order.id[:8]}",
        ]
        assert all(message["to"] == ["ada@example.com"] for message in sender.messages)

    async def test_statuses_may_be_skipped(self, db, lifecycle, place_order, pay_order):
        order = await pay_order(await place_order())

        completed = await lifecycle.advance_status(db, order.id, OrderStatus.COMPLETED)

        assert completed.status == "completed"

    async def test_same_status_is_a_silent_no_op(self, db, lifecycle, place_order, pay_order, sender):
        order = await pay_order(await place_order())
        sender.messages.clear()

        result = await lifecycle.advance_status(db, order.id, OrderStatus.PAID)

        assert result.status == "paid"
        assert sender.messages == []

    async def test_online_pending_order_cannot_be_advanced(self, db, lifecycle, place_order):
        order = await place_order()

        with pytest.raises(InvalidTransitionError):
            await lifecycle.advance_status(db, order.id, OrderStatus.PAID)
        assert (await OrderRepository.get(db, order.id)).status == "pending"

    async def test_cancellation_needs_its_own_operation(self, db, lifecycle, place_order):
        order = await place_order(payment_method="cash")

        with pytest.raises(InvalidTransitionError, match="cancellation"):
            await lifecycle.advance_status(db, order.id, OrderStatus.CANCELLED)

    async def test_cancelled_order_is_terminal(self, db, lifecycle, place_order, customer):
        order = await place_order(payment_method="cash")
        await lifecycle.cancel_order(db, order.id, customer)

        with pytest.raises(InvalidTransitionError):
            await lifecycle.advance_status(db, order.id, OrderStatus.PAID)
        assert (await OrderRepository.get(db, order.id)).status == "cancelled"

    async def test_unknown_order(self, db, lifecycle):
        with pytest.raises(NotFoundError):
            await lifecycle.advance_status(db, "missing", OrderStatus.PAID)

    async def test_notification_failure_does_not_fail_the_transition(self, db, lifecycle, place_order, sender):
        order = await place_order(payment_method="cash")
        sender.fail = True

        result = await lifecycle.advance_status(db, order.id, OrderStatus.PAID)

        assert result.status == "paid"
        assert (await OrderRepository.get(db, order.id)).status == "paid"
