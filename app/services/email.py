"""Transactional email: Brevo (formerly Sendinblue) HTTP API, or a logging sender for local development."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class SendResponse:
    """Outcome of one send; error_messages is empty on success."""

    successful: bool
    message_id: str | None = None
    error_messages: list[str] = field(default_factory=list)


class EmailSender(Protocol):
    def send(self, to: str, subject: str, body: str) -> SendResponse: ...


def _redact_email(email: str) -> str:
    """Redact an email address for logging to avoid PII leakage."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class LoggingEmailSender:
    """Dev mode: log the email instead of sending it."""

    def send(self, to: str, subject: str, body: str) -> SendResponse:
        logger.info(
            "Email not sent (no provider configured)",
            extra={"to": _redact_email(to), "subject": subject, "body_preview": body[:200]},
        )
        return SendResponse(successful=True)


class BrevoEmailSender:
    """Send plain-text email through the Brevo transactional API. Never raises."""

    def __init__(
        self,
        api_key: str,
        api_url: str,
        from_address: str,
        from_name: str | None = None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.from_address = from_address
        self.from_name = from_name
        self.timeout = timeout
        self._transport = transport

    def _payload(self, to: str, subject: str, body: str) -> dict:
        sender: dict[str, str] = {"email": self.from_address}
        if self.from_name and self.from_name.strip():
            sender["name"] = self.from_name.strip()
        return {
            "sender": sender,
            "to": [{"email": to}],
            "subject": subject,
            "textContent": body,
        }

    def send(self, to: str, subject: str, body: str) -> SendResponse:
        headers = {"api-key": self.api_key, "accept": "application/json"}
        try:
            with httpx.Client(transport=self._transport, timeout=self.timeout) as client:
                resp = client.post(self.api_url, json=self._payload(to, subject, body), headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Email provider unreachable: %s", e, extra={"to": _redact_email(to)})
            return SendResponse(successful=False, error_messages=[f"Email provider unreachable: {e!s}"])

        if 200 <= resp.status_code <= 299:
            try:
                message_id = resp.json().get("messageId")
            except ValueError:
                message_id = None
            logger.info("Email sent", extra={"to": _redact_email(to), "message_id": message_id})
            return SendResponse(successful=True, message_id=message_id)

        try:
            detail = resp.json().get("message") or resp.text[:500]
        except ValueError:
            detail = resp.text[:500] if resp.text else "Unknown error"
        logger.warning(
            "Email provider returned an error",
            extra={"to": _redact_email(to), "status_code": resp.status_code},
        )
        return SendResponse(
            successful=False,
            error_messages=[f"Email provider returned {resp.status_code}: {detail}"],
        )


def get_email_sender(settings: Settings) -> EmailSender:
    """Brevo sender when BREVO_API_KEY is set, logging sender otherwise."""
    if settings.BREVO_API_KEY is not None and settings.BREVO_API_KEY.get_secret_value().strip():
        return BrevoEmailSender(
            api_key=settings.BREVO_API_KEY.get_secret_value().strip(),
            api_url=settings.BREVO_API_URL,
            from_address=settings.EMAIL_FROM_ADDRESS,
            from_name=settings.EMAIL_FROM_NAME,
            timeout=settings.EMAIL_REQUEST_TIMEOUT_SEC,
        )
    return LoggingEmailSender()


def email_provider_name(settings: Settings) -> str:
    """Return "brevo" or "log", matching the sender get_email_sender would build."""
    return "brevo" if isinstance(get_email_sender(settings), BrevoEmailSender) else "log"
