"""FastAPI dependencies for board endpoints."""

from typing import Annotated

from fastapi import Depends

from cpq.services.board.registry import BoardSessionRegistry

# Board sessions live in this process; one registry per application
board_registry = BoardSessionRegistry()


def get_board_registry() -> BoardSessionRegistry:
    return board_registry


BoardRegistryDep = Annotated[BoardSessionRegistry, Depends(get_board_registry)]
