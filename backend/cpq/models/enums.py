"""Enum definitions for database models."""

from typing import Any

from cpq.models.status import Flags, Status, StatusEnum


class QuoteStatus(StatusEnum):
    """Status of a quote, in the order presented on the board.

    Any status may move to any other status; there is no transition table.
    """

    DRAFT = Status("draft", display="Draft")
    SENT = Status("sent", Flags.DELIVERED, display="Sent")
    NEGOTIATING = Status("negotiating", display="Negotiating")
    APPROVED = Status("approved", Flags.DELIVERED | Flags.FINAL | Flags.WON, display="Approved")
    REJECTED = Status("rejected", Flags.DELIVERED | Flags.FINAL, display="Rejected")
    EXPIRED = Status("expired", Flags.FINAL, display="Expired")

    @classmethod
    def coerce(cls, value: Any) -> "QuoteStatus":
        """Map a stored status value onto the enum, falling back to DRAFT.

        Used for display only; the stored value is left untouched.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return cls.DRAFT
