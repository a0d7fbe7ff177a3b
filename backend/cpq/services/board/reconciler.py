"""Drag-and-drop status board for quotes.

The board keeps a local copy of the tenant's quotes and regroups it
optimistically while a card is dragged. The durable write happens once,
when the card is dropped on a different column than it started in. If
that write fails, the local copy is replaced by a fresh read of the store.

Gesture state is a tagged value:

    Idle ──begin_drag──> Dragging ──end_drag(None | origin)──> Idle
                            │
                            └──end_drag(other column)──> Idle + Committing(quote)

Committing is tracked per quote, so another card can be picked up while a
write is in flight, but the same card cannot until its write resolves.
"""

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from cpq.models.enums import QuoteStatus
from cpq.services.board.grouping import column_of, group_by_status
from cpq.services.board.notifications import Notification, NotificationSink
from cpq.services.quotes.exceptions import StatusWriteError
from cpq.store.base import DocumentStore, Record, quotes_collection

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Idle:
    pass


@dataclass(frozen=True, slots=True)
class Dragging:
    quote_id: str
    # Stored value at pick-up, restored verbatim on cancel
    original_raw_status: Any
    original_status: QuoteStatus
    hypothesized_status: QuoteStatus


@dataclass(frozen=True, slots=True)
class Committing:
    quote_id: str
    original_status: QuoteStatus
    target_status: QuoteStatus
    task: "asyncio.Task[None]"


DragState = Idle | Dragging

IDLE = Idle()


class BoardReconciler:
    """Optimistic status board for one tenant."""

    def __init__(
        self,
        store: DocumentStore,
        tenant_id: str,
        quotes: list[Record],
        notify: NotificationSink,
    ):
        self.store = store
        self.tenant_id = tenant_id
        self.notify = notify
        self._quotes: list[Record] = list(quotes)
        self._state: DragState = IDLE
        self._commits: dict[str, Committing] = {}
        self.stale = False

    @classmethod
    async def load(cls, store: DocumentStore, tenant_id: str, notify: NotificationSink) -> "BoardReconciler":
        """Create a board populated from the store."""
        quotes = await store.list_all(quotes_collection(tenant_id))
        return cls(store, tenant_id, quotes, notify)

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def quotes(self) -> list[Record]:
        return list(self._quotes)

    def grouping(self) -> dict[QuoteStatus, list[Mapping[str, Any]]]:
        return group_by_status(self._quotes)

    def is_committing(self, quote_id: str) -> bool:
        return quote_id in self._commits

    def pending_commits(self) -> list[Committing]:
        return list(self._commits.values())

    def begin_drag(self, quote_id: str) -> bool:
        """Pick up a card. Returns False if the gesture was not started.

        Unknown quotes are ignored. A gesture is rejected while another one
        is active or while the same quote still has a write in flight.
        """
        if isinstance(self._state, Dragging):
            logger.debug("Drag already active", quote_id=quote_id, active=self._state.quote_id)
            return False
        if quote_id in self._commits:
            logger.info("Quote has a status write in flight", quote_id=quote_id)
            return False

        quote = self._find(quote_id)
        if quote is None:
            return False

        status = column_of(quote)
        self._state = Dragging(
            quote_id=quote_id,
            original_raw_status=quote.get("status"),
            original_status=status,
            hypothesized_status=status,
        )
        return True

    def hover_target(self, status: QuoteStatus) -> None:
        """Pointer entered a column. Moves the dragged card there in memory."""
        state = self._state
        if not isinstance(state, Dragging):
            return

        self._state = Dragging(
            quote_id=state.quote_id,
            original_raw_status=state.original_raw_status,
            original_status=state.original_status,
            hypothesized_status=status,
        )

        quote = self._find(state.quote_id)
        if quote is None or column_of(quote) == status:
            return
        self._replace(state.quote_id, {"status": status.value})

    def card_column(self, quote_id: str) -> QuoteStatus | None:
        """Column a card is currently shown in, or None for an unknown card."""
        card = self._find(quote_id)
        return column_of(card) if card is not None else None

    def hover_card(self, quote_id: str) -> None:
        """Pointer is over another card. Its column becomes the target."""
        if not isinstance(self._state, Dragging) or quote_id == self._state.quote_id:
            return
        column = self.card_column(quote_id)
        if column is not None:
            self.hover_target(column)

    def end_drag(self, target: QuoteStatus | None) -> "asyncio.Task[None] | None":
        """Release the card.

        None means the card was dropped outside any column and the gesture is
        cancelled. Returns the task performing the durable write, if any.
        """
        state = self._state
        if not isinstance(state, Dragging):
            return None
        self._state = IDLE

        if target is None or target == state.original_status:
            self._restore(state)
            return None

        self._replace(state.quote_id, {"status": target.value})

        task = asyncio.get_running_loop().create_task(self._commit(state.quote_id, target))
        self._commits[state.quote_id] = Committing(
            quote_id=state.quote_id,
            original_status=state.original_status,
            target_status=target,
            task=task,
        )
        return task

    def cancel_drag(self) -> None:
        self.end_drag(None)

    async def settle(self) -> None:
        """Wait until every in-flight status write has resolved."""
        while self._commits:
            await asyncio.gather(*(commit.task for commit in list(self._commits.values())))

    async def refresh(self) -> None:
        """Replace the local quotes with the store's current list.

        Raises StoreError if the read fails; the local copy is kept as is.
        """
        quotes = await self.store.list_all(quotes_collection(self.tenant_id))
        self._quotes = list(quotes)
        self.stale = False
        self._rebase_drag()

    async def _write_status(self, quote_id: str, target: QuoteStatus) -> None:
        """Durable write of the status field only.

        Any failure of the write, not only StoreError, leaves the stored value
        authoritative and is reported as StatusWriteError.
        """
        try:
            await self.store.update_field(quotes_collection(self.tenant_id), quote_id, {"status": target.value})
        except Exception as e:
            raise StatusWriteError(quote_id, target) from e

    async def _commit(self, quote_id: str, target: QuoteStatus) -> None:
        try:
            await self._write_status(quote_id, target)
        except StatusWriteError as e:
            logger.warning(
                "Status write failed, reverting to stored state",
                tenant_id=self.tenant_id,
                quote_id=quote_id,
                status=target.value,
                error=str(e.__cause__),
            )
            await self._rollback()
            self._emit(Notification("error", "Error", "Could not update the quote status."))
        else:
            # Keep the card where it was dropped even if a refetch ran meanwhile
            if self._find(quote_id) is not None:
                self._replace(quote_id, {"status": target.value})
            logger.info("Quote status updated", tenant_id=self.tenant_id, quote_id=quote_id, status=target.value)
            self._emit(Notification("success", "Quote updated", f"Status changed to {target.display}."))
        finally:
            self._commits.pop(quote_id, None)

    async def _rollback(self) -> None:
        try:
            await self.refresh()
        except Exception:
            logger.exception("Failed to reload quotes after status write failure", tenant_id=self.tenant_id)
            self.stale = True

    def _rebase_drag(self) -> None:
        """Re-apply an active gesture on top of freshly loaded quotes."""
        state = self._state
        if not isinstance(state, Dragging):
            return

        quote = self._find(state.quote_id)
        if quote is None:
            self._state = IDLE
            return

        status = column_of(quote)
        self._state = Dragging(
            quote_id=state.quote_id,
            original_raw_status=quote.get("status"),
            original_status=status,
            hypothesized_status=state.hypothesized_status,
        )
        if status != state.hypothesized_status:
            self._replace(state.quote_id, {"status": state.hypothesized_status.value})

    def _restore(self, state: Dragging) -> None:
        quote = self._find(state.quote_id)
        if quote is not None and quote.get("status") != state.original_raw_status:
            self._replace(state.quote_id, {"status": state.original_raw_status})

    def _find(self, quote_id: str) -> Record | None:
        for quote in self._quotes:
            if quote.get("id") == quote_id:
                return quote
        return None

    def _replace(self, quote_id: str, patch: Mapping[str, Any]) -> None:
        # Copy-on-write so records handed out by grouping() are never mutated
        self._quotes = [{**quote, **patch} if quote.get("id") == quote_id else quote for quote in self._quotes]

    def _emit(self, notification: Notification) -> None:
        try:
            self.notify(notification)
        except Exception:
            logger.exception("Notification sink failed", title=notification.title)
