"""Board API package."""

from cpq.api.v1.board.routes import router

__all__ = ["router"]
