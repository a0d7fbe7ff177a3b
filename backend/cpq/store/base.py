"""Document store abstraction.

Records are plain dicts scoped to a tenant. A collection is addressed by
(tenant_id, name) and a document by its collection plus record id:

    quotes = quotes_collection(tenant_id)
    await store.update_field(quotes, quote_id, {"status": "sent"})

    async def increment(tx: Transaction) -> int:
        counter = await tx.get(counter_ref(tenant_id))
        ...
        await tx.update(counter_ref(tenant_id), {"current_number": n})
        return n

    await store.run_transaction(increment)
"""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

T = TypeVar("T")

Record = dict[str, Any]

QUOTES = "quotes"
CLIENTS = "clients"
PRODUCTS = "products"
COUNTERS = "counters"

QUOTE_COUNTER_ID = "quote"


@dataclass(frozen=True, slots=True)
class CollectionPath:
    """Collection of records owned by one tenant."""

    tenant_id: str
    name: str

    def doc(self, record_id: str) -> "DocumentRef":
        return DocumentRef(collection=self, record_id=record_id)

    def __str__(self) -> str:
        return f"tenants/{self.tenant_id}/{self.name}"


@dataclass(frozen=True, slots=True)
class DocumentRef:
    """Reference to a single record."""

    collection: CollectionPath
    record_id: str

    def __str__(self) -> str:
        return f"{self.collection}/{self.record_id}"


def quotes_collection(tenant_id: str) -> CollectionPath:
    return CollectionPath(tenant_id=tenant_id, name=QUOTES)


def clients_collection(tenant_id: str) -> CollectionPath:
    return CollectionPath(tenant_id=tenant_id, name=CLIENTS)


def products_collection(tenant_id: str) -> CollectionPath:
    return CollectionPath(tenant_id=tenant_id, name=PRODUCTS)


def counter_ref(tenant_id: str) -> DocumentRef:
    """Reference to the tenant's quote number counter."""
    return CollectionPath(tenant_id=tenant_id, name=COUNTERS).doc(QUOTE_COUNTER_ID)


class Transaction(Protocol):
    """Handle passed to a run_transaction callback."""

    async def get(self, ref: DocumentRef) -> Record | None:
        """Read a record inside the transaction. Returns None if it does not exist."""
        ...

    async def update(self, ref: DocumentRef, patch: Mapping[str, Any]) -> None:
        """Partially update a record inside the transaction."""
        ...


class DocumentStore(Protocol):
    """Persistence boundary used by the services.

    All methods raise StoreError (or a subclass) on failure. Exceptions raised
    by a transaction callback propagate unchanged and roll the transaction back.
    """

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run fn atomically, retrying on write conflicts.

        Raises TransactionAbortedError when retries are exhausted.
        """
        ...

    async def get(self, ref: DocumentRef) -> Record | None: ...

    async def create(self, collection: CollectionPath, data: Mapping[str, Any]) -> str:
        """Insert a record and return its id."""
        ...

    async def update_field(self, collection: CollectionPath, record_id: str, patch: Mapping[str, Any]) -> None:
        """Single-document partial update. Raises DocumentNotFoundError if missing."""
        ...

    async def delete(self, ref: DocumentRef) -> None:
        """Delete a record. Raises DocumentNotFoundError if missing."""
        ...

    async def list_all(self, collection: CollectionPath) -> list[Record]: ...
