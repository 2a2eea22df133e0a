"""Outbound email.

The lifecycle service only knows the EmailSender protocol. Production sends
through the Resend HTTP API. Without an API key (local development, CI) the
logging sender writes the message to the log instead.
"""

import logging
from functools import lru_cache
from typing import Protocol

import httpx

from talentdesk.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


class EmailDeliveryError(Exception):
    """The message could not be handed to the mail provider."""


class EmailSender(Protocol):
    """Anything that can deliver a plain-text email."""

    async def send(self, *, to: str, subject: str, body: str) -> None:
        """Deliver one message.

        Raises:
            EmailDeliveryError: On any delivery failure.
        """
        ...


class ResendEmailSender:
    """Sends plain-text email via the Resend API.

    Args:
        api_key: Resend API key.
        sender: ``from`` address.
        timeout: Request timeout in seconds.
    """

    def __init__(
        self, api_key: str, sender: str, timeout: float = _RESEND_TIMEOUT
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._timeout = timeout

    async def send(self, *, to: str, subject: str, body: str) -> None:
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={
                        "from": self._sender,
                        "to": to,
                        "subject": subject,
                        "text": body,
                    },
                    timeout=self._timeout,
                )
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"Resend request failed: {exc}") from exc


class LoggingEmailSender:
    """Writes emails to the log instead of sending them.

    The body contains live links, so it is only logged at debug level.
    """

    async def send(self, *, to: str, subject: str, body: str) -> None:
        logger.info("Email to %s: %s", to, subject)
        logger.debug("Email body:\n%s", body)


@lru_cache
def get_email_sender() -> EmailSender:
    """Return the process-wide email sender (FastAPI dependency)."""
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        logger.warning("RESEND_API_KEY not set, emails will only be logged")
        return LoggingEmailSender()
    return ResendEmailSender(api_key=api_key, sender=settings.email_from)
