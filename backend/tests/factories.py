"""Builders for records placed directly in the in-memory store."""

from datetime import UTC, datetime
from decimal import Decimal

from cpq.models.enums import QuoteStatus
from cpq.store.base import clients_collection, counter_ref, products_collection, quotes_collection
from tests.fakes import InMemoryDocumentStore

TENANT = "tenant-a"


def add_counter(store: InMemoryDocumentStore, tenant_id: str = TENANT, current: int = 0) -> None:
    ref = counter_ref(tenant_id)
    store.put(ref.collection, ref.record_id, {"tenant_id": tenant_id, "current_number": current})


def add_client(
    store: InMemoryDocumentStore,
    client_id: str,
    name: str,
    email: str | None = None,
    tenant_id: str = TENANT,
) -> None:
    store.put(
        clients_collection(tenant_id),
        client_id,
        {
            "tenant_id": tenant_id,
            "name": name,
            "email": email,
            "phone": None,
            "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        },
    )


def add_product(
    store: InMemoryDocumentStore,
    product_id: str,
    name: str,
    unit_price: str = "0",
    *,
    category: str | None = None,
    active: bool = True,
    tenant_id: str = TENANT,
) -> None:
    store.put(
        products_collection(tenant_id),
        product_id,
        {
            "tenant_id": tenant_id,
            "name": name,
            "description": None,
            "sku": None,
            "category": category,
            "unit_price": Decimal(unit_price),
            "active": active,
            "created_at": datetime(2026, 1, 1, tzinfo=UTC),
            "updated_at": datetime(2026, 1, 1, tzinfo=UTC),
        },
    )


def add_quote(
    store: InMemoryDocumentStore,
    quote_id: str,
    status: str | QuoteStatus = QuoteStatus.DRAFT,
    *,
    number: str | None = None,
    client_id: str = "c1",
    client_name: str = "Acme",
    total: str = "119.00",
    created_at: datetime | None = None,
    expires_at: datetime | None = None,
    line_items: list[dict[str, str]] | None = None,
    tenant_id: str = TENANT,
) -> None:
    store.put(
        quotes_collection(tenant_id),
        quote_id,
        {
            "tenant_id": tenant_id,
            "number": number or f"COT-{quote_id}",
            "status": status.value if isinstance(status, QuoteStatus) else status,
            "client_id": client_id,
            "client_name": client_name,
            "line_items": line_items or [],
            "subtotal": Decimal(total),
            "tax": Decimal("0"),
            "total": Decimal(total),
            "payment_terms": None,
            "expires_at": expires_at,
            "created_at": created_at or datetime(2026, 1, 1, tzinfo=UTC),
        },
    )
