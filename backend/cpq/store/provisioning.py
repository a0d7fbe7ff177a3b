"""One-time tenant setup."""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cpq.models.quote import QuoteCounter
from cpq.store.base import QUOTE_COUNTER_ID

logger = structlog.get_logger(__name__)


async def provision_quote_counter(
    session_maker: async_sessionmaker[AsyncSession],
    tenant_id: str,
    start: int = 0,
) -> int:
    """Create the tenant's quote counter, or raise it to start.

    The counter is never lowered, so rerunning setup cannot cause numbers
    to be issued twice. Returns the counter value after provisioning.
    """
    if not tenant_id:
        raise ValueError("tenant_id must not be empty")
    if start < 0:
        raise ValueError("start must not be negative")

    async with session_maker() as session, session.begin():
        counter = await session.get(QuoteCounter, (tenant_id, QUOTE_COUNTER_ID), with_for_update=True)
        if counter is None:
            session.add(QuoteCounter(tenant_id=tenant_id, id=QUOTE_COUNTER_ID, current_number=start))
            logger.info("Provisioned quote counter", tenant_id=tenant_id, current_number=start)
            return start

        if counter.current_number < start:
            logger.info(
                "Raised quote counter",
                tenant_id=tenant_id,
                previous=counter.current_number,
                current_number=start,
            )
            counter.current_number = start
            return start

        logger.info("Quote counter already provisioned", tenant_id=tenant_id, current_number=counter.current_number)
        return counter.current_number
