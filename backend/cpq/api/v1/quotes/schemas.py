"""API schemas for quote endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from cpq.models.enums import QuoteStatus
from cpq.services.dashboard.stats_service import as_decimal
from cpq.services.quotes.quote_service import QuoteDraft
from cpq.services.quotes.totals import QuoteLine
from cpq.store.base import Record
from cpq.utils.datetime_utils import parse_datetime, to_local

# =============================================================================
# Request Schemas
# =============================================================================


class QuoteRequest(QuoteDraft):
    """Body for creating or replacing a quote."""

    pass


class StatusUpdateRequest(BaseModel):
    status: QuoteStatus


class SendEmailRequest(BaseModel):
    """The quote PDF is rendered by the client and uploaded with the request."""

    pdf_base64: str = Field(min_length=1)
    to: str | None = None
    reply_to: str | None = None
    sender_name: str | None = None


# =============================================================================
# Response Schemas
# =============================================================================


class QuoteResponse(BaseModel):
    id: str
    number: str
    # Raw stored value; display_status is what the board shows
    status: str
    display_status: QuoteStatus
    client_id: str | None
    client_name: str | None
    line_items: list[QuoteLine]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    payment_terms: str | None
    expires_at: datetime | None
    emailed_to: str | None
    emailed_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None

    @field_serializer("expires_at", "emailed_at", "created_at", "updated_at")
    def serialize_datetime(self, dt: datetime | None) -> str | None:
        """Serialize datetime to the local timezone."""
        localized = to_local(dt)
        return localized.isoformat() if localized else None

    @classmethod
    def from_record(cls, record: Record) -> "QuoteResponse":
        items: list[dict[str, Any]] = record.get("line_items") or []
        return cls(
            id=record["id"],
            number=record.get("number") or "",
            status=str(record.get("status") or ""),
            display_status=QuoteStatus.coerce(record.get("status")),
            client_id=record.get("client_id"),
            client_name=record.get("client_name"),
            line_items=[QuoteLine.model_validate(item) for item in items],
            subtotal=as_decimal(record.get("subtotal")),
            tax=as_decimal(record.get("tax")),
            total=as_decimal(record.get("total")),
            payment_terms=record.get("payment_terms"),
            expires_at=parse_datetime(record.get("expires_at")),
            emailed_to=record.get("emailed_to"),
            emailed_at=parse_datetime(record.get("emailed_at")),
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
        )


class QuoteListResponse(BaseModel):
    quotes: list[QuoteResponse]
    total: int


class StatusResponse(BaseModel):
    """Generic response for queued operations."""

    status: str
    message: str
