"""Quote management service.

This service handles business logic for quotes: numbering on creation,
totals, edits and direct status selection. E-mail delivery is dispatched
by API routes as a Dramatiq task, not by this service.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog
from pydantic import BaseModel

from cpq.models.base import utc_now
from cpq.models.enums import QuoteStatus
from cpq.services.clients.client_service import ClientService
from cpq.services.products.product_service import ProductService
from cpq.services.quotes.exceptions import QuoteNotFound
from cpq.services.quotes.numbering import QuoteNumberAllocator
from cpq.services.quotes.totals import QuoteLine, calculate_totals
from cpq.store.base import DocumentStore, Record, quotes_collection
from cpq.store.exceptions import DocumentNotFoundError, StoreError

logger = structlog.get_logger(__name__)


class QuoteDraft(BaseModel):
    """Editable fields of a quote."""

    client_id: str
    line_items: list[QuoteLine] = []
    payment_terms: str | None = None
    expires_at: datetime | None = None


class QuoteService:
    """Service for quote operations."""

    def __init__(
        self,
        store: DocumentStore,
        allocator: QuoteNumberAllocator | None = None,
        *,
        tax_rate: Decimal | None = None,
    ):
        self.store = store
        self.allocator = allocator or QuoteNumberAllocator(store)
        self.clients = ClientService(store)
        self.products = ProductService(store)
        self.tax_rate = tax_rate

    async def list_quotes(self, tenant_id: str) -> list[Record]:
        """List a tenant's quotes, newest first."""
        quotes = await self.store.list_all(quotes_collection(tenant_id))
        return sorted(quotes, key=lambda q: (q.get("created_at") is not None, q.get("created_at")), reverse=True)

    async def get_quote(self, tenant_id: str, quote_id: str) -> Record:
        quote = await self.store.get(quotes_collection(tenant_id).doc(quote_id))
        if quote is None:
            raise QuoteNotFound()
        return quote

    async def _resolve_lines(self, tenant_id: str, lines: list[QuoteLine]) -> list[QuoteLine]:
        """Check every line against the catalog and fill in its name and price.

        Raises ProductNotFound for a product missing from the tenant's catalog.
        """
        resolved = []
        for line in lines:
            product = await self.products.get_product(tenant_id, line.product_id)
            price = line.unit_price
            if price is None:
                price = Decimal(str(product.get("unit_price") or 0))
            name = line.product_name or product.get("name") or ""
            resolved.append(line.model_copy(update={"product_name": name, "unit_price": price}))
        return resolved

    async def _editable_fields(self, tenant_id: str, draft: QuoteDraft) -> dict[str, Any]:
        client = await self.clients.get_client(tenant_id, draft.client_id)
        lines = await self._resolve_lines(tenant_id, draft.line_items)
        totals = calculate_totals(lines, self.tax_rate)
        return {
            "client_id": draft.client_id,
            "client_name": client.get("name"),
            "line_items": [line.model_dump(mode="json") for line in lines],
            "subtotal": totals.subtotal,
            "tax": totals.tax,
            "total": totals.total,
            "payment_terms": draft.payment_terms,
            "expires_at": draft.expires_at,
        }

    async def create_quote(self, tenant_id: str, draft: QuoteDraft) -> Record:
        """Create a Draft quote with a freshly allocated number.

        Raises:
            ClientNotFound: The referenced client does not exist
            ProductNotFound: A line references a product missing from the catalog
            AllocationError: No number could be allocated; nothing is created
            StoreError: The quote could not be saved; the allocated number is not reused
        """
        fields = await self._editable_fields(tenant_id, draft)

        # Allocate only after validation so rejected drafts don't consume numbers
        number = await self.allocator.allocate_next(tenant_id)

        now = utc_now()
        try:
            quote_id = await self.store.create(
                quotes_collection(tenant_id),
                {
                    **fields,
                    "number": number,
                    "status": QuoteStatus.DRAFT.value,
                    "created_at": now,
                    "updated_at": now,
                },
            )
        except StoreError:
            # Numbers are never reused; this one stays as a gap in the sequence
            logger.error("Quote not saved after number allocation", tenant_id=tenant_id, number=number, exc_info=True)
            raise

        logger.info("Created quote", tenant_id=tenant_id, quote_id=quote_id, number=number)
        return await self.get_quote(tenant_id, quote_id)

    async def update_quote(self, tenant_id: str, quote_id: str, draft: QuoteDraft) -> Record:
        """Replace the editable fields of a quote. The number never changes."""
        fields = await self._editable_fields(tenant_id, draft)
        await self._update(tenant_id, quote_id, {**fields, "updated_at": utc_now()})
        return await self.get_quote(tenant_id, quote_id)

    async def set_status(self, tenant_id: str, quote_id: str, status: QuoteStatus) -> Record:
        """Set the status chosen directly by the user. Any status may follow any other."""
        await self._update(tenant_id, quote_id, {"status": status.value, "updated_at": utc_now()})
        logger.info("Quote status changed", tenant_id=tenant_id, quote_id=quote_id, status=status.value)
        return await self.get_quote(tenant_id, quote_id)

    async def mark_emailed(self, tenant_id: str, quote_id: str, *, to: str, message_id: str) -> None:
        """Record an e-mail delivery. Delivering a quote moves it to Sent."""
        now = utc_now()
        await self._update(
            tenant_id,
            quote_id,
            {
                "status": QuoteStatus.SENT.value,
                "emailed_to": to,
                "emailed_at": now,
                "email_message_id": message_id,
                "updated_at": now,
            },
        )

    async def delete_quote(self, tenant_id: str, quote_id: str) -> None:
        try:
            await self.store.delete(quotes_collection(tenant_id).doc(quote_id))
        except DocumentNotFoundError:
            raise QuoteNotFound() from None
        logger.info("Deleted quote", tenant_id=tenant_id, quote_id=quote_id)

    async def _update(self, tenant_id: str, quote_id: str, patch: dict[str, Any]) -> None:
        try:
            await self.store.update_field(quotes_collection(tenant_id), quote_id, patch)
        except DocumentNotFoundError:
            raise QuoteNotFound() from None
