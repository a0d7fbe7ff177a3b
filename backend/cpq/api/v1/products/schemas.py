"""API schemas for product endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, field_serializer

from cpq.services.dashboard.stats_service import as_decimal
from cpq.services.products.product_service import ProductDraft
from cpq.store.base import Record
from cpq.utils.datetime_utils import parse_datetime, to_local


class ProductRequest(ProductDraft):
    """Body for creating or replacing a product."""

    pass


class ProductResponse(BaseModel):
    id: str
    name: str
    description: str | None
    sku: str | None
    category: str | None
    unit_price: Decimal
    active: bool
    created_at: datetime | None
    updated_at: datetime | None

    @field_serializer("created_at", "updated_at")
    def serialize_datetime(self, dt: datetime | None) -> str | None:
        """Serialize datetime to the local timezone."""
        localized = to_local(dt)
        return localized.isoformat() if localized else None

    @classmethod
    def from_record(cls, record: Record) -> "ProductResponse":
        return cls(
            id=record["id"],
            name=record.get("name") or "",
            description=record.get("description"),
            sku=record.get("sku"),
            category=record.get("category"),
            unit_price=as_decimal(record.get("unit_price")),
            active=bool(record.get("active", True)),
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
        )


class ProductListResponse(BaseModel):
    products: list[ProductResponse]
    total: int
