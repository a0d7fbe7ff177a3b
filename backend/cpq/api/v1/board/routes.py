"""Status board API endpoints.

A board session holds the optimistic grouping for one open board. Gesture
steps are posted as they happen; the durable status write runs in the
background after a drop, and its outcome is pushed to the session's
Mercure topic.
"""

import structlog
from fastapi import APIRouter, HTTPException, status

from cpq.api.v1.board.dependencies import BoardRegistryDep
from cpq.api.v1.board.schemas import (
    BoardSessionResponse,
    DragBeginRequest,
    DragResponse,
    DragTargetRequest,
)
from cpq.api.v1.dependencies import MercureServiceDep, StoreDep, TenantLogContext
from cpq.logging import bind_log_context
from cpq.models.enums import QuoteStatus
from cpq.services.board.reconciler import Dragging
from cpq.services.board.registry import BoardSession, BoardSessionNotFound, BoardSessionRegistry
from cpq.store.exceptions import StoreError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/tenants/{tenant_id}/board/sessions", tags=["board"], dependencies=[TenantLogContext])


def _session(registry: BoardSessionRegistry, tenant_id: str, session_id: str) -> BoardSession:
    bind_log_context(session_id=session_id)
    try:
        return registry.get(tenant_id, session_id)
    except BoardSessionNotFound:
        raise HTTPException(status_code=404, detail="Board session not found")


def _drag_response(session: BoardSession, accepted: bool) -> DragResponse:
    return DragResponse(**BoardSessionResponse.from_session(session).model_dump(), accepted=accepted)


def _resolve_target(session: BoardSession, body: DragTargetRequest) -> QuoteStatus | None:
    if body.quote_id is not None:
        return session.board.card_column(body.quote_id)
    return body.status


@router.post(
    "",
    response_model=BoardSessionResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="openBoardSession",
)
async def open_board_session(
    tenant_id: str,
    store: StoreDep,
    registry: BoardRegistryDep,
    mercure: MercureServiceDep,
) -> BoardSessionResponse:
    """Load the tenant's quotes into a new board session."""
    try:
        session = await registry.create(store, tenant_id, mercure)
    except StoreError as e:
        logger.error("Failed to load board", tenant_id=tenant_id, error=str(e))
        raise HTTPException(status_code=503, detail="Could not load quotes")
    bind_log_context(session_id=session.id)
    return BoardSessionResponse.from_session(session)


@router.get("/{session_id}", response_model=BoardSessionResponse, operation_id="getBoardSession")
async def get_board_session(tenant_id: str, session_id: str, registry: BoardRegistryDep) -> BoardSessionResponse:
    return BoardSessionResponse.from_session(_session(registry, tenant_id, session_id))


@router.post("/{session_id}/refresh", response_model=BoardSessionResponse, operation_id="refreshBoardSession")
async def refresh_board_session(tenant_id: str, session_id: str, registry: BoardRegistryDep) -> BoardSessionResponse:
    """Reload quotes from the store, keeping an active gesture on top."""
    session = _session(registry, tenant_id, session_id)
    try:
        await session.board.refresh()
    except StoreError as e:
        logger.error("Failed to refresh board", tenant_id=tenant_id, session_id=session_id, error=str(e))
        raise HTTPException(status_code=503, detail="Could not load quotes")
    return BoardSessionResponse.from_session(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT, operation_id="closeBoardSession")
async def close_board_session(tenant_id: str, session_id: str, registry: BoardRegistryDep) -> None:
    """Cancel any active gesture and close the session once pending writes resolve."""
    bind_log_context(session_id=session_id)
    try:
        await registry.close(tenant_id, session_id)
    except BoardSessionNotFound:
        raise HTTPException(status_code=404, detail="Board session not found")


@router.post("/{session_id}/drag/begin", response_model=DragResponse, operation_id="beginDrag")
async def begin_drag(
    tenant_id: str,
    session_id: str,
    body: DragBeginRequest,
    registry: BoardRegistryDep,
) -> DragResponse:
    """Pick up a card. Not accepted for unknown cards or while a write for it is in flight."""
    session = _session(registry, tenant_id, session_id)
    accepted = session.board.begin_drag(body.quote_id)
    return _drag_response(session, accepted)


@router.post("/{session_id}/drag/over", response_model=DragResponse, operation_id="dragOver")
async def drag_over(
    tenant_id: str,
    session_id: str,
    body: DragTargetRequest,
    registry: BoardRegistryDep,
) -> DragResponse:
    """Pointer moved over a column or a card."""
    session = _session(registry, tenant_id, session_id)
    board = session.board
    if body.quote_id is not None:
        board.hover_card(body.quote_id)
    elif body.status is not None:
        board.hover_target(body.status)
    return _drag_response(session, accepted=isinstance(board.state, Dragging))


@router.post("/{session_id}/drag/end", response_model=DragResponse, operation_id="endDrag")
async def end_drag(
    tenant_id: str,
    session_id: str,
    body: DragTargetRequest,
    registry: BoardRegistryDep,
    wait: bool = False,
) -> DragResponse:
    """Drop the card. An empty body cancels the gesture.

    The status write runs in the background; pass wait=true to respond only
    after it has resolved.
    """
    session = _session(registry, tenant_id, session_id)
    was_dragging = isinstance(session.board.state, Dragging)
    task = session.board.end_drag(_resolve_target(session, body))
    if task is not None and wait:
        await task
    return _drag_response(session, accepted=was_dragging)
