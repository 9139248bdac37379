"""
Error taxonomy of the order lifecycle.

Every error except ``NotificationError`` is surfaced to the caller and leaves
persisted state untouched. ``NotificationError`` is caught and logged by the
post-commit hook runner and never crosses a lifecycle call boundary.
"""
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class OrderLifecycleError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderLifecycleError):
    """Bad input shape: delivery fields, empty cart, unknown product."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class NotFoundError(OrderLifecycleError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidTransitionError(OrderLifecycleError):
    """The order's current status does not allow the requested transition."""

    status_code = status.HTTP_409_CONFLICT


class PreconditionError(OrderLifecycleError):
    status_code = status.HTTP_412_PRECONDITION_FAILED


class GatewayError(OrderLifecycleError):
    """Payment provider failure or timeout. Local state is unchanged; safe to retry."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, reason: str, provider_status: int | None = None):
        super().__init__(f"Payment provider error: {reason}")
        self.reason = reason
        self.provider_status = provider_status


class NotificationError(OrderLifecycleError):
    pass


async def _lifecycle_error_handler(request: Request, exc: OrderLifecycleError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Maps the lifecycle error taxonomy onto HTTP responses for a service app."""
    app.add_exception_handler(OrderLifecycleError, _lifecycle_error_handler)
