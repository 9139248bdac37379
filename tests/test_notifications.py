import json
from datetime import date, datetime, time, timezone
from decimal import Decimal

import httpx
import pytest

from shared.exceptions import NotificationError
from services.notification_service.dispatcher import Audience, NotificationDispatcher, TemplateKind
from services.notification_service.senders import ResendEmailSender
from services.notification_service.templates import render_admin_order_received, render_customer_message
from services.order_service.schemas import OrderResponse

from .conftest import RecordingSender

ORDER_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"


def make_snapshot(**overrides) -> OrderResponse:
    values = {
        "id": ORDER_ID,
        "user_id": "user-1",
        "customer_name": "Ada <b>Lovelace</b>",
        "customer_email": "ada@example.com",
        "total_amount": Decimal("19.98"),
        "status": "paid",
        "delivery": {"delivery_type": "shipping", "street": "1 Analytical Way", "city": "London", "zip": "N1 7AA"},
        "created_at": datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc),
        "updated_at": datetime(2030, 6, 1, 10, 0, tzinfo=timezone.utc),
        "items": [{"product_id": "p1", "quantity": 2, "price_at_purchase": Decimal("9.99")}],
    }
    values.update(overrides)
    return OrderResponse(**values)


class TestTemplates:
    def test_admin_order_received(self):
        message = render_admin_order_received(make_snapshot())

        assert message.subject == "New Order #0f8fad5b - €19.98"
        assert "Ada &lt;b&gt;Lovelace&lt;/b&gt;" in message.html
        assert "<b>Lovelace</b>" not in message.html
        assert "1 Analytical Way" in message.html
        assert "€9.99" in message.html

    def test_customer_order_received(self):
        message = render_customer_message(make_snapshot(), "order_received")
        assert message.subject == "Order Confirmed! #0f8fad5b"

    def test_status_update_uses_the_new_status(self):
        message = render_customer_message(make_snapshot(status="shipped"), "status_update", new_status="shipped")

        assert message.subject == "Order Update: Order Shipped - #0f8fad5b"
        assert "SHIPPED" in message.html

    def test_cancellation_with_refund(self):
        message = render_customer_message(
            make_snapshot(status="cancelled"), "cancellation", refund_amount=Decimal("19.98")
        )

        assert message.subject == "Order Update: Order Cancelled - #0f8fad5b"
        assert "A refund of €19.98 has been issued" in message.html

    def test_pickup_details(self):
        snapshot = make_snapshot(
            delivery={
                "delivery_type": "pickup",
                "location_id": "loc-1",
                "pickup_date": date(2030, 6, 2),
                "pickup_time": time(12, 30),
            },
            pickup_location={
                "id": "loc-1", "name": "Main Street Shop", "address": "1 Main Street",
                "city": "Vienna", "is_active": True,
            },
        )

        html = render_admin_order_received(snapshot).html

        assert "Main Street Shop, 1 Main Street, Vienna" in html
        assert "2030-06-02" in html
        assert "12:30" in html


class TestDispatcher:
    async def test_admin_audience(self):
        sender = RecordingSender()
        dispatcher = NotificationDispatcher(sender, ["owner@sweetshop.test", "baker@sweetshop.test"])

        await dispatcher.notify(Audience.ADMINS, TemplateKind.ORDER_RECEIVED, make_snapshot())

        [message] = sender.messages
        assert message["to"] == ["owner@sweetshop.test", "baker@sweetshop.test"]
        assert message["subject"].startswith("New Order #")

    async def test_customer_audience(self):
        sender = RecordingSender()
        dispatcher = NotificationDispatcher(sender, ["owner@sweetshop.test"])

        await dispatcher.notify(
            Audience.CUSTOMER, TemplateKind.STATUS_UPDATE, make_snapshot(status="ready"), new_status="ready"
        )

        [message] = sender.messages
        assert message["to"] == ["ada@example.com"]
        assert message["subject"] == "Order Update: Ready for Pickup - #0f8fad5b"

    async def test_no_admin_recipients(self):
        sender = RecordingSender()

        with pytest.raises(NotificationError, match="No admin recipients"):
            await NotificationDispatcher(sender, []).notify(Audience.ADMINS, TemplateKind.ORDER_RECEIVED, make_snapshot())
        assert sender.messages == []

    async def test_sender_failure_is_raised(self):
        sender = RecordingSender()
        sender.fail = True

        with pytest.raises(NotificationError):
            await NotificationDispatcher(sender).notify(Audience.CUSTOMER, TemplateKind.ORDER_RECEIVED, make_snapshot())


class TestResendSender:
    async def test_posts_the_message(self):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json={"id": "email_1"})

        sender = ResendEmailSender("re_test", "Sweet Shop <shop@sweetshop.test>", transport=httpx.MockTransport(handler))
        await sender.send(["ada@example.com"], "Hello", "<p>Hi</p>")

        request = seen["request"]
        assert request.url == "https://api.resend.com/emails"
        assert request.headers["Authorization"] == "Bearer re_test"
        assert json.loads(request.content) == {
            "from": "Sweet Shop <shop@sweetshop.test>",
            "to": ["ada@example.com"],
            "subject": "Hello",
            "html": "<p>Hi</p>",
        }

    async def test_rejected_message(self):
        def handler(request):
            return httpx.Response(422, json={"message": "Invalid `to` field"})

        sender = ResendEmailSender("re_test", "shop@sweetshop.test", transport=httpx.MockTransport(handler))

        with pytest.raises(NotificationError, match="422"):
            await sender.send(["not-an-address"], "Hello", "<p>Hi</p>")

    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("dns failure", request=request)

        sender = ResendEmailSender("re_test", "shop@sweetshop.test", transport=httpx.MockTransport(handler))

        with pytest.raises(NotificationError, match="dns failure"):
            await sender.send(["ada@example.com"], "Hello", "<p>Hi</p>")
