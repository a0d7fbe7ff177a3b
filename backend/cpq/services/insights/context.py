"""Business data summary sent to the model.

The summary covers the latest quotes, per-client and per-product
performance, month-over-month trends and a couple of alerts. Only the
most recent quotes are included in detail; the total count is exact.
"""

from collections import defaultdict
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from typing import Any

from cpq.models.enums import QuoteStatus
from cpq.services.board.grouping import column_of
from cpq.services.dashboard.stats_service import as_decimal
from cpq.store.base import Record
from cpq.utils.datetime_utils import LOCAL_TIMEZONE, ensure_aware, parse_datetime, to_local

DETAILED_QUOTES_LIMIT = 50
URGENT_WITHIN_DAYS = 2
STALE_DRAFT_DAYS = 7
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


def _rate(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _local_date(value: Any) -> date | None:
    local = to_local(parse_datetime(value))
    return local.date() if local else None


def _quote_summary(quote: Record) -> dict[str, Any]:
    created = _local_date(quote.get("created_at"))
    expires = _local_date(quote.get("expires_at"))
    return {
        "number": quote.get("number"),
        "client": quote.get("client_name"),
        "client_id": quote.get("client_id"),
        "status": column_of(quote).display,
        "subtotal": as_decimal(quote.get("subtotal")),
        "tax": as_decimal(quote.get("tax")),
        "total": as_decimal(quote.get("total")),
        "created": created.isoformat() if created else None,
        "expires": expires.isoformat() if expires else None,
        "payment_terms": quote.get("payment_terms"),
        "products": [
            {
                "name": line.get("product_name"),
                "quantity": as_decimal(line.get("quantity")),
                "unit_price": as_decimal(line.get("unit_price")),
                "amount": as_decimal(line.get("quantity")) * as_decimal(line.get("unit_price")),
            }
            for line in quote.get("line_items") or []
        ],
    }


def _period(quotes: list[tuple[Record, date | None]], start: date, end: date) -> dict[str, Any]:
    in_period = [q for q, created in quotes if created is not None and start <= created <= end]
    won = [q for q in in_period if column_of(q) in QuoteStatus.won_states()]
    return {
        "total": len(in_period),
        "approved": len(won),
        "amount": sum((as_decimal(q.get("total")) for q in won), Decimal("0")),
        "conversion_rate": _rate(len(won), len(in_period)),
    }


def build_insights_context(quotes: list[Record], clients: list[Record], now: datetime) -> dict[str, Any]:
    """Summarize a tenant's business data for the insights prompt."""
    today = ensure_aware(now).astimezone(LOCAL_TIMEZONE).date()
    ordered = sorted(
        quotes,
        key=lambda q: parse_datetime(q.get("created_at")) or datetime.min.replace(tzinfo=UTC),
        reverse=True,
    )
    recent = ordered[:DETAILED_QUOTES_LIMIT]
    dated = [(q, _local_date(q.get("created_at"))) for q in recent]

    def is_won(q: Record) -> bool:
        return column_of(q) in QuoteStatus.won_states()

    client_rows = []
    for client in clients:
        own = [q for q in recent if q.get("client_id") == client.get("id")]
        won = [q for q in own if is_won(q)]
        last = _local_date(own[0].get("created_at")) if own else None
        client_rows.append(
            {
                "name": client.get("name"),
                "quotes": len(own),
                "approved": len(won),
                "rejected": sum(1 for q in own if column_of(q) == QuoteStatus.REJECTED),
                "approved_amount": sum((as_decimal(q.get("total")) for q in won), Decimal("0")),
                "conversion_rate": _rate(len(won), len(own)),
                "last_quote": last.isoformat() if last else None,
            }
        )

    products: dict[str, dict[str, Any]] = {}
    for quote in recent:
        for line in quote.get("line_items") or []:
            name = line.get("product_name") or line.get("product_id") or ""
            product = products.setdefault(
                name,
                {"name": name, "times_quoted": 0, "times_approved": 0, "quantity": Decimal("0"), "amount": Decimal("0")},
            )
            quantity = as_decimal(line.get("quantity"))
            product["times_quoted"] += 1
            product["quantity"] += quantity
            product["amount"] += quantity * as_decimal(line.get("unit_price"))
            if is_won(quote):
                product["times_approved"] += 1
    for product in products.values():
        product["conversion_rate"] = _rate(product["times_approved"], product["times_quoted"])

    this_month = today.replace(day=1)
    last_month_end = this_month - timedelta(days=1)
    last_month = last_month_end.replace(day=1)

    by_weekday: dict[str, list[int]] = defaultdict(lambda: [0, 0])
    for quote, created in dated:
        if created is None:
            continue
        counts = by_weekday[WEEKDAYS[created.weekday()]]
        counts[0] += 1
        if is_won(quote):
            counts[1] += 1

    urgent = []
    stale_drafts = []
    for quote, created in dated:
        status = column_of(quote)
        expires = _local_date(quote.get("expires_at"))
        if status in (QuoteStatus.SENT, QuoteStatus.NEGOTIATING) and expires is not None:
            if 0 <= (expires - today).days <= URGENT_WITHIN_DAYS:
                urgent.append(quote)
        if status == QuoteStatus.DRAFT and created is not None and (today - created).days > STALE_DRAFT_DAYS:
            stale_drafts.append(quote)

    return {
        "quotes": [_quote_summary(q) for q in recent],
        "total_quotes": len(quotes),
        "clients": client_rows,
        "products": list(products.values()),
        "trends": {
            "this_month": _period(dated, this_month, today),
            "last_month": _period(dated, last_month, last_month_end),
            "by_weekday": [
                {
                    "day": day,
                    "total": by_weekday[day][0],
                    "approved": by_weekday[day][1],
                    "conversion_rate": _rate(by_weekday[day][1], by_weekday[day][0]),
                }
                for day in WEEKDAYS
            ],
        },
        "alerts": {
            "urgent": len(urgent),
            "urgent_detail": [
                {
                    "number": q.get("number"),
                    "client": q.get("client_name"),
                    "amount": as_decimal(q.get("total")),
                    "expires": str(_local_date(q.get("expires_at"))),
                }
                for q in urgent
            ],
            "stale_drafts": len(stale_drafts),
            "stale_drafts_amount": sum((as_decimal(q.get("total")) for q in stale_drafts), Decimal("0")),
        },
    }
