"""API schemas for the status board."""

from typing import Any, Literal

from pydantic import BaseModel, model_validator

from cpq.models.enums import QuoteStatus
from cpq.services.board.reconciler import Dragging
from cpq.services.board.registry import BoardSession
from cpq.services.dashboard.stats_service import as_decimal


class DragBeginRequest(BaseModel):
    quote_id: str


class DragTargetRequest(BaseModel):
    """Drop or hover target: a column, or a card whose column is used."""

    status: QuoteStatus | None = None
    quote_id: str | None = None

    @model_validator(mode="after")
    def check_single_target(self) -> "DragTargetRequest":
        if self.status is not None and self.quote_id is not None:
            raise ValueError("Give either status or quote_id, not both")
        return self


class BoardCard(BaseModel):
    id: str
    number: str
    client_name: str | None
    total: str
    # Raw stored value, which may fall outside the board columns
    status: str

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "BoardCard":
        return cls(
            id=record["id"],
            number=record.get("number") or "",
            client_name=record.get("client_name"),
            total=str(as_decimal(record.get("total"))),
            status=str(record.get("status") or ""),
        )


class BoardColumn(BaseModel):
    status: QuoteStatus
    name: str
    cards: list[BoardCard]


class BoardSessionResponse(BaseModel):
    session_id: str
    state: Literal["idle", "dragging"]
    active_quote_id: str | None
    committing: list[str]
    stale: bool
    columns: list[BoardColumn]

    @classmethod
    def from_session(cls, session: BoardSession) -> "BoardSessionResponse":
        board = session.board
        state = board.state
        return cls(
            session_id=session.id,
            state="dragging" if isinstance(state, Dragging) else "idle",
            active_quote_id=state.quote_id if isinstance(state, Dragging) else None,
            committing=[c.quote_id for c in board.pending_commits()],
            stale=board.stale,
            columns=[
                BoardColumn(
                    status=status,
                    name=status.display,
                    cards=[BoardCard.from_record(dict(q)) for q in quotes],
                )
                for status, quotes in board.grouping().items()
            ],
        )


class DragResponse(BoardSessionResponse):
    """Board after a gesture step. accepted is False when the step was ignored."""

    accepted: bool
