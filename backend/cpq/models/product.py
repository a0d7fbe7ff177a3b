"""Catalog product database model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, Numeric
from sqlmodel import Field, SQLModel

from cpq.models.base import new_ulid, utc_now


class Product(SQLModel, table=True):
    """Sellable item offered on quote lines."""

    __tablename__ = "products"

    id: str = Field(default_factory=new_ulid, primary_key=True, max_length=26)
    tenant_id: str = Field(index=True, max_length=128)
    name: str
    description: str | None = None
    sku: str | None = Field(default=None, max_length=64)
    category: str | None = None
    unit_price: Decimal = Field(default=Decimal("0"), sa_column=Column(Numeric(14, 2), nullable=False))
    # Inactive products stay on existing quotes but are hidden from pickers
    active: bool = True
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
