"""Partition quotes into board columns by status."""

from collections.abc import Iterable, Mapping
from typing import Any

from cpq.models.enums import QuoteStatus

# Column order on the board
BOARD_COLUMNS: tuple[QuoteStatus, ...] = tuple(QuoteStatus)


def column_of(quote: Mapping[str, Any]) -> QuoteStatus:
    """Board column a quote is shown in. Unknown statuses land in Draft."""
    return QuoteStatus.coerce(quote.get("status"))


def group_by_status(quotes: Iterable[Mapping[str, Any]]) -> dict[QuoteStatus, list[Mapping[str, Any]]]:
    """Group quotes by column, keeping list order within each column.

    Every column is present, empty or not. Records are not modified.
    """
    groups: dict[QuoteStatus, list[Mapping[str, Any]]] = {status: [] for status in BOARD_COLUMNS}
    for quote in quotes:
        groups[column_of(quote)].append(quote)
    return groups
