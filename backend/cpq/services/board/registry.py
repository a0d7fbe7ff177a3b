"""Live board sessions served over HTTP.

Each browser tab with the board open owns one session. Notifications for a
session are pushed to its own Mercure topic.

A tab that goes away without closing its session leaves nothing behind for
long: sessions not accessed for ``board_session_idle_minutes`` are evicted,
and a tenant never holds more than ``board_sessions_per_tenant`` sessions
(the least recently used one is evicted to make room).
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field

import structlog

from cpq.config import settings
from cpq.models.base import new_ulid
from cpq.services.board.notifications import Notification, NotificationSink
from cpq.services.board.reconciler import BoardReconciler
from cpq.services.exceptions import NotFoundError
from cpq.services.mercure.events import BoardNotificationEvent
from cpq.services.mercure.publish_service import MercurePublishService
from cpq.store.base import DocumentStore
from cpq.tasks.utils.background_tasks import BackgroundTasks

logger = structlog.get_logger(__name__)

CLOSE_TIMEOUT = 5.0


class BoardSessionNotFound(NotFoundError):
    """Board session not found or already closed."""

    pass


def mercure_sink(
    publisher: MercurePublishService,
    bg_tasks: BackgroundTasks,
    *,
    tenant_id: str,
    session_id: str,
) -> NotificationSink:
    """Notification sink publishing to the session's Mercure topic without blocking."""

    def notify(notification: Notification) -> None:
        event = BoardNotificationEvent(
            tenant_id=tenant_id,
            session_id=session_id,
            kind=notification.kind,
            title=notification.title,
            message=notification.message,
        )
        bg_tasks.run(publisher.publish(event))

    return notify


@dataclass
class BoardSession:
    id: str
    tenant_id: str
    board: BoardReconciler
    bg_tasks: BackgroundTasks = field(default_factory=BackgroundTasks)
    last_seen: float = 0.0


class BoardSessionRegistry:
    """In-process registry of open board sessions."""

    def __init__(
        self,
        *,
        idle_timeout: float | None = None,
        max_per_tenant: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sessions: dict[str, BoardSession] = {}
        self._closing = BackgroundTasks()
        self._clock = clock
        self.idle_timeout = idle_timeout if idle_timeout is not None else settings.board_session_idle_minutes * 60.0
        self.max_per_tenant = max_per_tenant if max_per_tenant is not None else settings.board_sessions_per_tenant

    def __len__(self) -> int:
        return len(self._sessions)

    async def create(
        self,
        store: DocumentStore,
        tenant_id: str,
        publisher: MercurePublishService,
    ) -> BoardSession:
        self.expire_idle()

        session_id = new_ulid()
        bg_tasks = BackgroundTasks()
        sink = mercure_sink(publisher, bg_tasks, tenant_id=tenant_id, session_id=session_id)
        board = await BoardReconciler.load(store, tenant_id, sink)

        tenant_sessions = sorted(
            (s for s in self._sessions.values() if s.tenant_id == tenant_id),
            key=lambda s: s.last_seen,
        )
        for oldest in tenant_sessions[: max(len(tenant_sessions) - self.max_per_tenant + 1, 0)]:
            self._evict(oldest, reason="tenant session limit")

        session = BoardSession(
            id=session_id,
            tenant_id=tenant_id,
            board=board,
            bg_tasks=bg_tasks,
            last_seen=self._clock(),
        )
        self._sessions[session_id] = session
        logger.info("Opened board session", tenant_id=tenant_id, session_id=session_id)
        return session

    def get(self, tenant_id: str, session_id: str) -> BoardSession:
        self.expire_idle()
        session = self._sessions.get(session_id)
        # Sessions are never visible across tenants
        if session is None or session.tenant_id != tenant_id:
            raise BoardSessionNotFound()
        session.last_seen = self._clock()
        return session

    def expire_idle(self) -> int:
        """Evict sessions not accessed within the idle timeout. Returns how many."""
        deadline = self._clock() - self.idle_timeout
        expired = [s for s in self._sessions.values() if s.last_seen <= deadline]
        for session in expired:
            self._evict(session, reason="idle")
        return len(expired)

    def _evict(self, session: BoardSession, *, reason: str) -> None:
        del self._sessions[session.id]
        session.board.cancel_drag()
        # Writes already dropped on the board still finish and notify
        self._closing.run(self._drain(session))
        logger.info(
            "Evicted board session",
            tenant_id=session.tenant_id,
            session_id=session.id,
            reason=reason,
        )

    async def _drain(self, session: BoardSession, *, timeout: float = CLOSE_TIMEOUT) -> None:
        await session.board.settle()
        await session.bg_tasks.wait(timeout=timeout)

    async def close(self, tenant_id: str, session_id: str, *, timeout: float = CLOSE_TIMEOUT) -> None:
        """Close a session after its pending writes and notifications finish."""
        session = self.get(tenant_id, session_id)
        del self._sessions[session_id]
        session.board.cancel_drag()
        await self._drain(session, timeout=timeout)
        logger.info("Closed board session", tenant_id=tenant_id, session_id=session_id)

    async def close_all(self) -> None:
        for session in list(self._sessions.values()):
            await self.close(session.tenant_id, session.id)
        await self._closing.wait(timeout=CLOSE_TIMEOUT)
