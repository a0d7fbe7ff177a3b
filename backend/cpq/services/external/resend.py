"""Resend transactional e-mail API client."""

import base64
from dataclasses import dataclass

import httpx
import structlog

from cpq.config import settings
from cpq.utils.request_retry import RequestRetryConfig, get_request_retrying

logger = structlog.get_logger(__name__)

RESEND_RETRY_CONFIG = RequestRetryConfig(max_attempts=3, min_wait=1.0, max_wait=5.0)


class ResendError(Exception):
    """Resend API error."""

    pass


@dataclass(frozen=True)
class EmailAttachment:
    filename: str
    content: bytes


class ResendService:
    """Sends e-mails through the Resend API."""

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    async def send_email(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        reply_to: str | None = None,
        attachments: list[EmailAttachment] | None = None,
    ) -> str:
        """Send an e-mail and return the Resend message id.

        Raises:
            ResendError: If the API rejects the message or is unreachable
        """
        if not settings.resend_api_key:
            raise ResendError("Resend API key not configured")

        payload: dict[str, object] = {
            "from": f"{settings.email_from_name} <{settings.email_from}>",
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if reply_to:
            payload["reply_to"] = reply_to
        if attachments:
            payload["attachments"] = [
                {"filename": a.filename, "content": base64.b64encode(a.content).decode("ascii")}
                for a in attachments
            ]

        async def make_request(client: httpx.AsyncClient) -> str:
            response = await client.post(
                f"{settings.resend_api_url.rstrip('/')}/emails",
                json=payload,
                headers={"Authorization": f"Bearer {settings.resend_api_key}"},
                timeout=30.0,
            )
            if response.status_code >= 400:
                error_body = response.text[:1000] if response.text else "No response body"
                logger.error("Resend API error", status_code=response.status_code, response_body=error_body)
                raise ResendError(f"Resend API returned status {response.status_code}: {error_body}")
            message_id: str = response.json().get("id", "")
            return message_id

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                async for attempt in get_request_retrying(RESEND_RETRY_CONFIG):
                    with attempt:
                        if attempt.retry_state.attempt_number > 1:
                            logger.warning("Retrying Resend request", attempt=attempt.retry_state.attempt_number)
                        message_id = await make_request(client)
        except httpx.RequestError as e:
            raise ResendError(f"Resend request failed after {RESEND_RETRY_CONFIG.max_attempts} attempts") from e

        logger.info("Sent e-mail", to=to, message_id=message_id)
        return message_id
