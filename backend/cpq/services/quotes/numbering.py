"""Sequential quote number allocation."""

import structlog

from cpq.config import settings
from cpq.services.quotes.exceptions import AllocationError, CounterNotFoundError
from cpq.store.base import DocumentStore, Transaction, counter_ref
from cpq.store.exceptions import StoreError

logger = structlog.get_logger(__name__)


def format_quote_number(number: int, *, prefix: str | None = None, width: int | None = None) -> str:
    """Format a sequence value as a quote number.

    Width is a minimum: 9 -> "COT-0009", 12345 -> "COT-12345".
    """
    prefix = settings.quote_number_prefix if prefix is None else prefix
    width = settings.quote_number_width if width is None else width
    return f"{prefix}{number:0{width}d}"


class QuoteNumberAllocator:
    """Hands out unique, strictly increasing quote numbers per tenant.

    Each call runs one store transaction that reads the tenant's counter,
    increments it and writes it back. Mutual exclusion and conflict retries
    belong to the store; this class keeps no state between calls.

    Usage:
        allocator = QuoteNumberAllocator(store)
        number = await allocator.allocate_next(tenant_id)  # "COT-0042"
    """

    def __init__(self, store: DocumentStore, *, prefix: str | None = None, width: int | None = None):
        self._store = store
        self._prefix = prefix
        self._width = width

    async def allocate_next(self, tenant_id: str) -> str:
        """Allocate the next quote number for a tenant.

        Raises:
            CounterNotFoundError: The tenant has no counter record
            AllocationError: The counter is corrupt or the transaction failed
        """
        if not tenant_id:
            raise AllocationError("A tenant is required to allocate a quote number.")

        ref = counter_ref(tenant_id)

        async def increment(tx: Transaction) -> int:
            counter = await tx.get(ref)
            if counter is None:
                raise CounterNotFoundError("Quote numbering is not set up for this account.")

            current = counter.get("current_number")
            if not isinstance(current, int) or isinstance(current, bool) or current < 0:
                raise AllocationError("The quote counter holds an invalid value.")

            next_number = current + 1
            await tx.update(ref, {"current_number": next_number})
            return next_number

        try:
            number = await self._store.run_transaction(increment)
        except AllocationError:
            logger.error("Quote number allocation rejected", tenant_id=tenant_id, exc_info=True)
            raise
        except StoreError as e:
            logger.error("Quote number transaction failed", tenant_id=tenant_id, error=str(e))
            raise AllocationError("Could not generate a quote number. Please try again.") from e

        formatted = format_quote_number(number, prefix=self._prefix, width=self._width)
        logger.info("Allocated quote number", tenant_id=tenant_id, number=formatted)
        return formatted
