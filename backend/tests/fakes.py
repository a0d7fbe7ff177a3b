"""In-memory test doubles."""

import asyncio
import copy
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar

from cpq.models.base import new_ulid
from cpq.services.board.notifications import Notification
from cpq.services.external.resend import EmailAttachment, ResendError
from cpq.store.base import CollectionPath, DocumentRef, Record
from cpq.store.exceptions import DocumentNotFoundError, StoreError, TransactionAbortedError

T = TypeVar("T")


class _Conflict(Exception):
    pass


class InMemoryTransaction:
    """Buffers writes and remembers the version of every record it read."""

    def __init__(self, store: "InMemoryDocumentStore"):
        self._store = store
        self.reads: dict[DocumentRef, int] = {}
        self.writes: dict[DocumentRef, dict[str, Any]] = {}

    async def get(self, ref: DocumentRef) -> Record | None:
        # Yield so concurrent transactions interleave between read and commit
        await asyncio.sleep(0)
        self.reads[ref] = self._store.version(ref)
        record = self._store.raw(ref)
        if record is None:
            return None
        return {**copy.deepcopy(record), **copy.deepcopy(self.writes.get(ref, {}))}

    async def update(self, ref: DocumentRef, patch: Mapping[str, Any]) -> None:
        if self._store.raw(ref) is None:
            raise DocumentNotFoundError(f"{ref} does not exist")
        self.writes.setdefault(ref, {}).update(copy.deepcopy(dict(patch)))


class InMemoryDocumentStore:
    """Document store with optimistic-concurrency transactions.

    A transaction commits only if none of the records it read changed in the
    meantime; otherwise it is retried, up to max_attempts.
    """

    def __init__(self, *, max_attempts: int = 10):
        self.max_attempts = max_attempts
        self._data: dict[CollectionPath, dict[str, Record]] = {}
        self._versions: dict[DocumentRef, int] = {}
        self.fail_transactions = False
        self.fail_updates: set[str] = set()
        self.update_error: Exception = StoreError("Permission denied")
        self.fail_list_all = False
        self.list_error: Exception = StoreError("Unavailable")
        self.fail_creates = False
        self.update_calls: list[tuple[CollectionPath, str, dict[str, Any]]] = []
        self.transaction_attempts = 0

    # -- helpers for tests --------------------------------------------------

    def put(self, collection: CollectionPath, record_id: str, data: Mapping[str, Any]) -> None:
        self._data.setdefault(collection, {})[record_id] = {**copy.deepcopy(dict(data)), "id": record_id}
        self._bump(collection.doc(record_id))

    def raw(self, ref: DocumentRef) -> Record | None:
        return self._data.get(ref.collection, {}).get(ref.record_id)

    def version(self, ref: DocumentRef) -> int:
        return self._versions.get(ref, 0)

    def _bump(self, ref: DocumentRef) -> None:
        self._versions[ref] = self._versions.get(ref, 0) + 1

    # -- DocumentStore --------------------------------------------------------

    async def run_transaction(self, fn: Callable[[InMemoryTransaction], Awaitable[T]]) -> T:
        if self.fail_transactions:
            raise TransactionAbortedError("Transaction aborted")

        for _ in range(self.max_attempts):
            self.transaction_attempts += 1
            tx = InMemoryTransaction(self)
            result = await fn(tx)
            try:
                self._commit(tx)
            except _Conflict:
                continue
            return result
        raise TransactionAbortedError(f"Transaction aborted after {self.max_attempts} attempts")

    def _commit(self, tx: InMemoryTransaction) -> None:
        if any(self.version(ref) != seen for ref, seen in tx.reads.items()):
            raise _Conflict()
        for ref, patch in tx.writes.items():
            record = self.raw(ref)
            if record is None:
                raise _Conflict()
            record.update(patch)
            self._bump(ref)

    async def get(self, ref: DocumentRef) -> Record | None:
        record = self.raw(ref)
        return copy.deepcopy(record) if record is not None else None

    async def create(self, collection: CollectionPath, data: Mapping[str, Any]) -> str:
        if self.fail_creates:
            raise StoreError("Unavailable")
        record_id = new_ulid()
        self.put(collection, record_id, data)
        return record_id

    async def update_field(self, collection: CollectionPath, record_id: str, patch: Mapping[str, Any]) -> None:
        await asyncio.sleep(0)
        self.update_calls.append((collection, record_id, dict(patch)))
        if record_id in self.fail_updates:
            raise self.update_error
        record = self.raw(collection.doc(record_id))
        if record is None:
            raise DocumentNotFoundError(f"{collection.doc(record_id)} does not exist")
        record.update(copy.deepcopy(dict(patch)))
        self._bump(collection.doc(record_id))

    async def delete(self, ref: DocumentRef) -> None:
        if self.raw(ref) is None:
            raise DocumentNotFoundError(f"{ref} does not exist")
        del self._data[ref.collection][ref.record_id]
        self._bump(ref)

    async def list_all(self, collection: CollectionPath) -> list[Record]:
        await asyncio.sleep(0)
        if self.fail_list_all:
            raise self.list_error
        return [copy.deepcopy(r) for _, r in sorted(self._data.get(collection, {}).items())]


class RecordingSink:
    """Notification sink that keeps everything it receives."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.notifications.append(notification)


class RecordingPublisher:
    """Stands in for MercurePublishService."""

    def __init__(self) -> None:
        self.events: list[Any] = []

    async def publish(self, event: Any) -> None:
        self.events.append(event)


class FakeRedis:
    """The subset of redis.asyncio.Redis used by the insights cache."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiry: dict[str, int | None] = {}

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.values[key] = value
        self.expiry[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
        return removed


class FakeOpenAI:
    """Stands in for OpenAIService; returns a fixed reply."""

    def __init__(self, reply: dict[str, Any]):
        self.reply = reply
        self.calls: list[tuple[str, str]] = []

    async def complete_json(self, system_prompt: str, user_prompt: str, *, temperature: float = 0.7) -> dict[str, Any]:
        self.calls.append((system_prompt, user_prompt))
        return self.reply


class FakeResend:
    """Stands in for ResendService; records what would have been sent."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: list[dict[str, object]] = []

    async def send_email(
        self,
        *,
        to: str,
        subject: str,
        html: str,
        reply_to: str | None = None,
        attachments: list[EmailAttachment] | None = None,
    ) -> str:
        if self.fail:
            raise ResendError("Resend API returned status 500")
        self.sent.append({"to": to, "subject": subject, "html": html, "reply_to": reply_to, "attachments": attachments})
        return "msg_1"
