"""Quote and quote counter database models."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Numeric, String, UniqueConstraint
from sqlmodel import Field, SQLModel

from cpq.models.base import new_ulid, utc_now
from cpq.models.enums import QuoteStatus


class QuoteCounter(SQLModel, table=True):
    """Last issued quote number per tenant.

    Mutated only inside a store transaction that locks the row
    (SELECT ... FOR UPDATE), so concurrent allocations never share a value.
    """

    __tablename__ = "quote_counters"

    tenant_id: str = Field(primary_key=True, max_length=128)
    id: str = Field(default="quote", primary_key=True, max_length=32)
    current_number: int = Field(default=0, ge=0)


QUOTE_NUMBER_CONSTRAINT = UniqueConstraint("tenant_id", "number", name="uq_quote_tenant_number")


class Quote(SQLModel, table=True):
    """Price quotation issued to a client."""

    __tablename__ = "quotes"
    __table_args__ = (QUOTE_NUMBER_CONSTRAINT,)

    id: str = Field(default_factory=new_ulid, primary_key=True, max_length=26)
    tenant_id: str = Field(index=True, max_length=128)

    # Display number: "COT-0042"
    number: str = Field(max_length=32)

    # Plain string column: records written by other clients may hold values
    # outside QuoteStatus, which the board shows under Draft.
    status: str = Field(default=QuoteStatus.DRAFT.value, sa_column=Column(String(32), nullable=False))

    client_id: str = Field(index=True, max_length=26)
    client_name: str | None = None

    # [{product_id, product_name, quantity, unit_price}], decimals as strings
    line_items: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    subtotal: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(14, 2), nullable=False))
    tax: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(14, 2), nullable=False))
    total: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(14, 2), nullable=False))

    payment_terms: str | None = None
    expires_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))

    # E-mail delivery
    emailed_to: str | None = None
    emailed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))
    email_message_id: str | None = None

    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
