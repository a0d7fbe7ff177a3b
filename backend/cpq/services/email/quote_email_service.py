"""Send a quote to its client by e-mail and mark it as Sent."""

from dataclasses import dataclass
from decimal import Decimal
from html import escape

import structlog

from cpq.config import settings
from cpq.services.clients.client_service import ClientNotFound, ClientService
from cpq.services.dashboard.stats_service import as_decimal
from cpq.services.email.exceptions import MissingAttachment, MissingClientEmail
from cpq.services.external.resend import EmailAttachment, ResendService
from cpq.services.quotes.quote_service import QuoteService
from cpq.store.base import DocumentStore, Record
from cpq.utils.datetime_utils import parse_datetime, to_local

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EmailDelivery:
    quote_id: str
    to: str
    message_id: str


def format_amount(value: Decimal) -> str:
    return f"{value:,.2f}"


def render_quote_email(quote: Record, client_name: str, sender_name: str) -> str:
    """HTML body of the quote e-mail. All interpolated values are escaped."""
    number = escape(str(quote.get("number") or ""))
    expires = to_local(parse_datetime(quote.get("expires_at")))
    expires_row = (
        f"<p><strong>Valid until:</strong> {escape(expires.strftime('%Y-%m-%d'))}</p>" if expires else ""
    )
    return f"""<!DOCTYPE html>
<html>
<body style="font-family: Arial, sans-serif; color: #333;">
  <h2>Quote {number}</h2>
  <p>Dear {escape(client_name)},</p>
  <p>Please find attached our quote <strong>{number}</strong>.</p>
  <p><strong>Total amount:</strong> ${escape(format_amount(as_decimal(quote.get("total"))))}</p>
  {expires_row}
  <p>The complete quote is attached as a PDF.</p>
  <p>We remain at your disposal for any questions.</p>
  <p>Kind regards,<br><strong>{escape(sender_name)}</strong></p>
</body>
</html>"""


class QuoteEmailService:
    """Delivers quotes through Resend."""

    def __init__(self, store: DocumentStore, resend: ResendService | None = None):
        self.quotes = QuoteService(store)
        self.clients = ClientService(store)
        self.resend = resend or ResendService()

    async def resolve_recipient(self, tenant_id: str, quote: Record, to: str | None = None) -> tuple[str, str]:
        """Recipient address and display name for a quote.

        Raises:
            MissingClientEmail: Neither an explicit address nor a client e-mail exists
        """
        client: Record = {}
        if quote.get("client_id"):
            try:
                client = await self.clients.get_client(tenant_id, quote["client_id"])
            except ClientNotFound:
                client = {}
        address = to or client.get("email")
        if not address:
            raise MissingClientEmail("The client has no e-mail address")
        return address, client.get("name") or quote.get("client_name") or ""

    async def send_quote(
        self,
        tenant_id: str,
        quote_id: str,
        pdf: bytes,
        *,
        to: str | None = None,
        reply_to: str | None = None,
        sender_name: str | None = None,
    ) -> EmailDelivery:
        """Send the quote PDF and record the delivery on the quote.

        Raises:
            QuoteNotFound: The quote does not exist
            MissingAttachment: The PDF is empty
            MissingClientEmail: No recipient address could be determined
            ResendError: The e-mail could not be sent; the quote is left unchanged
        """
        if not pdf:
            raise MissingAttachment("The quote PDF is required")

        quote = await self.quotes.get_quote(tenant_id, quote_id)
        address, client_name = await self.resolve_recipient(tenant_id, quote, to)
        number = quote.get("number") or quote_id

        message_id = await self.resend.send_email(
            to=address,
            subject=f"Quote {number}",
            html=render_quote_email(quote, client_name, sender_name or settings.email_from_name),
            reply_to=reply_to,
            attachments=[EmailAttachment(filename=f"{number}.pdf", content=pdf)],
        )

        await self.quotes.mark_emailed(tenant_id, quote_id, to=address, message_id=message_id)
        logger.info("Quote e-mailed", tenant_id=tenant_id, quote_id=quote_id, to=address, message_id=message_id)
        return EmailDelivery(quote_id=quote_id, to=address, message_id=message_id)
