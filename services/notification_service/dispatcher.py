"""
Notification dispatcher.

Routes a lifecycle event to an audience (the shop's admins or the ordering
customer), renders the matching template and hands it to the e-mail sender.
Every failure is raised as ``NotificationError``; deciding to swallow it is
the caller's job (see ``services.orchestrator.hooks``).
"""
from enum import Enum

import structlog

from shared.config import settings
from shared.exceptions import NotificationError
from shared.observability import notifications_total
from services.order_service.schemas import OrderResponse

from .senders import EmailSender, LoggingEmailSender, ResendEmailSender
from .templates import render_admin_order_received, render_customer_message

logger = structlog.get_logger(__name__)


class Audience(str, Enum):
    ADMINS = "admins"
    CUSTOMER = "customer"


class TemplateKind(str, Enum):
    ORDER_RECEIVED = "order_received"
    STATUS_UPDATE = "status_update"
    CANCELLATION = "cancellation"


class NotificationDispatcher:
    def __init__(self, sender: EmailSender, admin_emails: list[str] | None = None):
        self.sender = sender
        self.admin_emails = list(admin_emails or [])

    async def notify(
        self,
        audience: Audience,
        template_kind: TemplateKind,
        order: OrderResponse,
        *,
        new_status: str | None = None,
        refund_amount=None,
    ) -> None:
        labels = {"audience": audience.value, "template": template_kind.value}
        try:
            if audience == Audience.ADMINS:
                if not self.admin_emails:
                    raise NotificationError("No admin recipients configured")
                recipients = self.admin_emails
                if template_kind == TemplateKind.ORDER_RECEIVED:
                    message = render_admin_order_received(order)
                else:
                    message = render_customer_message(order, template_kind.value, new_status, refund_amount)
            else:
                recipients = [order.customer_email]
                message = render_customer_message(order, template_kind.value, new_status, refund_amount)

            await self.sender.send(recipients, message.subject, message.html)
        except NotificationError:
            notifications_total.labels(outcome="failed", **labels).inc()
            raise

        notifications_total.labels(outcome="sent", **labels).inc()
        logger.info("notification_sent", order_id=order.id, **labels)


_current_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    """Return the process-wide dispatcher, built from settings on first use."""
    global _current_dispatcher
    if _current_dispatcher is None:
        if settings.RESEND_API_KEY:
            sender = ResendEmailSender(
                settings.RESEND_API_KEY,
                settings.MAIL_FROM,
                base_url=settings.RESEND_API_URL,
                timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
            )
        else:
            sender = LoggingEmailSender()
        _current_dispatcher = NotificationDispatcher(sender, settings.ADMIN_EMAILS)
    return _current_dispatcher
