"""E-mail sender port and adapters."""
from abc import ABC, abstractmethod

import httpx
import structlog

from shared.exceptions import NotificationError

logger = structlog.get_logger(__name__)


class EmailSender(ABC):
    @abstractmethod
    async def send(self, recipients: list[str], subject: str, html: str) -> None:
        """Deliver one message. Raises NotificationError on failure."""
        ...


class LoggingEmailSender(EmailSender):
    """Development sender: logs the message instead of delivering it."""

    async def send(self, recipients, subject, html):
        logger.info("email_logged", recipients=recipients, subject=subject)


class ResendEmailSender(EmailSender):
    """Sends through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        sender: str,
        *,
        base_url: str = "https://api.resend.com",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.sender = sender
        self._client_kwargs = {
            "base_url": base_url,
            "headers": {"Authorization": f"Bearer {api_key}"},
            "timeout": timeout,
        }
        if transport is not None:
            self._client_kwargs["transport"] = transport

    async def send(self, recipients, subject, html):
        body = {"from": self.sender, "to": list(recipients), "subject": subject, "html": html}
        try:
            async with httpx.AsyncClient(**self._client_kwargs) as client:
                resp = await client.post("/emails", json=body)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise NotificationError(f"Resend rejected the message: {e.response.status_code} {e.response.text}") from e
        except httpx.HTTPError as e:
            raise NotificationError(f"Resend request failed: {e}") from e
        logger.info("email_sent", recipients=len(recipients), subject=subject)
