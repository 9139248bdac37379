"""
Message rendering for lifecycle notifications.

Deliberately plain: a subject line and a small HTML body built from the order
snapshot. Anything customer-provided is HTML-escaped.
"""
from dataclasses import dataclass
from html import escape

from services.order_service.schemas import OrderResponse

STATUS_MESSAGES = {
    "paid": ("Payment Confirmed", "Your payment has been received and your order is being processed."),
    "pending_cash": ("Awaiting Cash Payment", "Your order is reserved and will be paid in cash."),
    "confirmed": ("Order Confirmed", "Your order has been confirmed and will be prepared soon."),
    "preparing": ("Order Being Prepared", "Great news! We're now preparing your delicious desserts."),
    "ready": ("Ready for Pickup", "Your order is ready! You can pick it up at the designated location."),
    "processing": ("Order Processing", "Your order is being processed for shipping."),
    "shipped": ("Order Shipped", "Your order is on its way! It will arrive soon."),
    "delivered": ("Order Delivered", "Your order has been delivered. Enjoy your treats!"),
    "completed": ("Order Completed", "Your order is complete. Thank you for shopping with us!"),
    "cancelled": ("Order Cancelled", "Your order has been cancelled. If you have questions, please contact us."),
}
DEFAULT_STATUS_MESSAGE = ("Order Update", "Your order status has been updated.")


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    html: str


def short_id(order: OrderResponse) -> str:
    return order.id[:8]


def _money(amount) -> str:
    return f"€{amount:.2f}"


def _delivery_html(order: OrderResponse) -> str:
    delivery = order.delivery
    if delivery.delivery_type == "pickup":
        location = order.pickup_location
        where = escape(f"{location.name}, {location.address}, {location.city}") if location else "N/A"
        return (
            "<h3>Pickup Details</h3>"
            f"<p><strong>Location:</strong> {where}</p>"
            f"<p><strong>Date:</strong> {delivery.pickup_date.isoformat()}</p>"
            f"<p><strong>Time:</strong> {delivery.pickup_time.strftime('%H:%M')}</p>"
        )
    return (
        "<h3>Shipping Details</h3>"
        f"<p><strong>Address:</strong> {escape(delivery.street)}, "
        f"{escape(delivery.zip)} {escape(delivery.city)}</p>"
    )


def _items_html(order: OrderResponse) -> str:
    rows = "".join(
        f"<tr><td>{escape(item.product_id)}</td><td>{item.quantity}</td>"
        f"<td>{_money(item.price_at_purchase)}</td></tr>"
        for item in order.items
    )
    return (
        "<table><thead><tr><th>Item</th><th>Qty</th><th>Price</th></tr></thead>"
        f"<tbody>{rows}</tbody>"
        f"<tfoot><tr><td colspan=\"2\">Total:</td><td>{_money(order.total_amount)}</td></tr></tfoot></table>"
    )


def render_admin_order_received(order: OrderResponse) -> RenderedMessage:
    subject = f"New Order #{short_id(order)} - {_money(order.total_amount)}"
    html = (
        "<h1>New Order Received!</h1>"
        f"<p><strong>Order ID:</strong> {order.id}</p>"
        f"<p><strong>Status:</strong> {order.status.value}</p>"
        f"<p><strong>Customer:</strong> {escape(order.customer_name)} &lt;{escape(order.customer_email)}&gt;</p>"
        f"{_delivery_html(order)}{_items_html(order)}"
    )
    return RenderedMessage(subject=subject, html=html)


def render_customer_message(order: OrderResponse, kind: str, new_status: str | None = None, refund_amount=None) -> RenderedMessage:
    status = new_status or order.status.value
    if kind == "order_received":
        subject = f"Order Confirmed! #{short_id(order)}"
        header = f"<h1>Order Received!</h1><p>Thank you for your order, {escape(order.customer_name)}!</p>"
    else:
        title, message = STATUS_MESSAGES.get(status, DEFAULT_STATUS_MESSAGE)
        subject = f"Order Update: {title} - #{short_id(order)}"
        header = f"<h1>{title}</h1><p>{message}</p>"
        if kind == "cancellation" and refund_amount is not None:
            header += f"<p>A refund of {_money(refund_amount)} has been issued to your original payment method.</p>"

    html = (
        f"{header}"
        f"<p><strong>Order ID:</strong> #{short_id(order)}</p>"
        f"<p><strong>Current Status:</strong> {status.upper()}</p>"
        f"{_delivery_html(order)}{_items_html(order)}"
    )
    return RenderedMessage(subject=subject, html=html)
