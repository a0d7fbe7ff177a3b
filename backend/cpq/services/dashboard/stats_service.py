"""Dashboard statistics computed from a tenant's quotes and clients."""

from collections import defaultdict
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from pydantic import BaseModel

from cpq.models.enums import QuoteStatus
from cpq.services.board.grouping import column_of
from cpq.store.base import DocumentStore, Record, clients_collection, quotes_collection
from cpq.utils.datetime_utils import parse_datetime

logger = structlog.get_logger(__name__)

RECENT_QUOTES_LIMIT = 5
TOP_CLIENTS_LIMIT = 5


class DashboardStats(BaseModel):
    total_approved: Decimal
    quotes_created: int
    approval_rate: float
    client_count: int


class FunnelStep(BaseModel):
    status: QuoteStatus
    name: str
    count: int


class ClientRanking(BaseModel):
    client_id: str | None
    client_name: str
    quote_count: int
    approved_count: int
    approved_total: Decimal


def as_decimal(value: Any) -> Decimal:
    """Stored totals may be Decimal, float, int or numeric strings."""
    if value is None:
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return Decimal("0")


def approval_rate(quotes: list[Record]) -> float:
    """Percentage of delivered quotes that were won. 0 when nothing was delivered.

    Returned unrounded; clients format it for display.
    """
    statuses = [column_of(q) for q in quotes]
    delivered = sum(1 for s in statuses if s in QuoteStatus.delivered_states())
    won = sum(1 for s in statuses if s in QuoteStatus.won_states())
    if delivered == 0:
        return 0.0
    return won / delivered * 100


def approved_total(quotes: list[Record]) -> Decimal:
    return sum(
        (as_decimal(q.get("total")) for q in quotes if column_of(q) in QuoteStatus.won_states()),
        Decimal("0"),
    )


class DashboardService:
    """Read-only aggregates for the dashboard."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def _quotes(self, tenant_id: str) -> list[Record]:
        return await self.store.list_all(quotes_collection(tenant_id))

    async def stats(self, tenant_id: str) -> DashboardStats:
        quotes = await self._quotes(tenant_id)
        clients = await self.store.list_all(clients_collection(tenant_id))
        return DashboardStats(
            total_approved=approved_total(quotes),
            quotes_created=len(quotes),
            approval_rate=approval_rate(quotes),
            client_count=len(clients),
        )

    async def recent_quotes(self, tenant_id: str, limit: int = RECENT_QUOTES_LIMIT) -> list[Record]:
        quotes = await self._quotes(tenant_id)
        dated = [(created, q) for q in quotes if (created := parse_datetime(q.get("created_at"))) is not None]
        dated.sort(key=lambda pair: pair[0], reverse=True)
        return [q for _, q in dated[:limit]]

    async def status_funnel(self, tenant_id: str) -> list[FunnelStep]:
        """Quote count per status in board order, omitting empty statuses.

        Unknown stored statuses are not counted.
        """
        counts: dict[str, int] = defaultdict(int)
        for quote in await self._quotes(tenant_id):
            counts[quote.get("status") or ""] += 1
        return [
            FunnelStep(status=status, name=status.display, count=counts[status.value])
            for status in QuoteStatus
            if counts[status.value] > 0
        ]

    async def top_clients(self, tenant_id: str, limit: int = TOP_CLIENTS_LIMIT) -> list[ClientRanking]:
        """Clients ranked by approved amount, then by number of quotes."""
        rankings: dict[str | None, ClientRanking] = {}
        for quote in await self._quotes(tenant_id):
            client_id = quote.get("client_id")
            ranking = rankings.get(client_id)
            if ranking is None:
                ranking = ClientRanking(
                    client_id=client_id,
                    client_name=quote.get("client_name") or "",
                    quote_count=0,
                    approved_count=0,
                    approved_total=Decimal("0"),
                )
                rankings[client_id] = ranking
            ranking.quote_count += 1
            if column_of(quote) in QuoteStatus.won_states():
                ranking.approved_count += 1
                ranking.approved_total += as_decimal(quote.get("total"))

        ranked = sorted(rankings.values(), key=lambda r: (r.approved_total, r.quote_count), reverse=True)
        return ranked[:limit]
