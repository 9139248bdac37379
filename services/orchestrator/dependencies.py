from services.notification_service.dispatcher import get_dispatcher
from services.payment_service.providers import get_gateway

from .lifecycle import OrderLifecycle


def get_lifecycle() -> OrderLifecycle:
    """FastAPI dependency: an orchestrator wired to the configured gateway and dispatcher."""
    return OrderLifecycle(get_gateway(), get_dispatcher())
