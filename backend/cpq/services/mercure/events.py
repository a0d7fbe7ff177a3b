"""Mercure event definitions.

Quote events are lightweight pings; clients refetch the data from the API.
Board notifications carry the toast shown to the user who dropped a card.
"""

from enum import StrEnum
from typing import Literal

from pydantic import BaseModel


class MercureEventType(StrEnum):
    """Mercure event types - serializes to string value in JSON."""

    QUOTE_UPDATE = "quote_update"
    QUOTE_LIST_UPDATE = "quote_list_update"
    BOARD_NOTIFICATION = "board_notification"


class BaseMercureEvent(BaseModel):
    """Base class for all Mercure events."""

    type: MercureEventType
    tenant_id: str

    def get_topics(self) -> list[str]:
        """Return Mercure topics for this event."""
        raise NotImplementedError


class QuoteUpdateEvent(BaseMercureEvent):
    """A single quote changed."""

    type: Literal[MercureEventType.QUOTE_UPDATE] = MercureEventType.QUOTE_UPDATE
    quote_id: str

    def get_topics(self) -> list[str]:
        return [f"tenants/{self.tenant_id}/quotes", f"tenants/{self.tenant_id}/quotes/{self.quote_id}"]


class QuoteListUpdateEvent(BaseMercureEvent):
    """A quote was created or deleted."""

    type: Literal[MercureEventType.QUOTE_LIST_UPDATE] = MercureEventType.QUOTE_LIST_UPDATE

    def get_topics(self) -> list[str]:
        return [f"tenants/{self.tenant_id}/quotes"]


class BoardNotificationEvent(BaseMercureEvent):
    """Outcome of a board drop, delivered to the session that made it."""

    type: Literal[MercureEventType.BOARD_NOTIFICATION] = MercureEventType.BOARD_NOTIFICATION
    session_id: str
    kind: Literal["success", "error"]
    title: str
    message: str

    def get_topics(self) -> list[str]:
        return [f"tenants/{self.tenant_id}/board/{self.session_id}"]


# Union for API schema exposure
MercureEventUnion = QuoteUpdateEvent | QuoteListUpdateEvent | BoardNotificationEvent
