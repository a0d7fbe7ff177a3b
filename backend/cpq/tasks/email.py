"""Quote e-mail delivery background task."""

import asyncio
import base64

import dramatiq
import structlog

from cpq.logging import bind_log_context
from cpq.services.email.quote_email_service import QuoteEmailService
from cpq.services.exceptions import ServiceError
from cpq.services.mercure.events import QuoteUpdateEvent
from cpq.services.mercure.publish_service import MercurePublishService
from cpq.tasks.utils.task_db import task_store

logger = structlog.get_logger(__name__)


# Service errors (missing quote, missing address) will not fix themselves on retry
@dramatiq.actor(max_retries=3, min_backoff=5000, max_backoff=60000, throws=(ServiceError,))
def send_quote_email(
    tenant_id: str,
    quote_id: str,
    pdf_base64: str,
    to: str | None = None,
    reply_to: str | None = None,
    sender_name: str | None = None,
) -> None:
    """Send a quote PDF to the client and mark the quote as Sent.

    Args:
        tenant_id: Owning tenant
        quote_id: Quote to send
        pdf_base64: Rendered quote PDF, base64 encoded
        to: Recipient override; defaults to the client's e-mail
        reply_to: Reply-To address
        sender_name: Signature in the e-mail body
    """
    asyncio.run(_send_quote_email_async(tenant_id, quote_id, pdf_base64, to, reply_to, sender_name))


async def _send_quote_email_async(
    tenant_id: str,
    quote_id: str,
    pdf_base64: str,
    to: str | None,
    reply_to: str | None,
    sender_name: str | None,
) -> None:
    """Async implementation of send_quote_email."""
    bind_log_context(tenant_id=tenant_id, quote_id=quote_id)
    async with task_store() as store:
        service = QuoteEmailService(store)
        delivery = await service.send_quote(
            tenant_id,
            quote_id,
            base64.b64decode(pdf_base64),
            to=to,
            reply_to=reply_to,
            sender_name=sender_name,
        )

    await MercurePublishService().publish(QuoteUpdateEvent(tenant_id=tenant_id, quote_id=quote_id))
    logger.info("Completed quote e-mail task", tenant_id=tenant_id, quote_id=quote_id, message_id=delivery.message_id)
