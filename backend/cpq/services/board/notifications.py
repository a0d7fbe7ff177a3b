"""Notifications surfaced by the board to the user."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

NotificationKind = Literal["success", "error"]


@dataclass(frozen=True, slots=True)
class Notification:
    kind: NotificationKind
    title: str
    message: str


# Fire-and-forget callback; the return value is ignored.
NotificationSink = Callable[[Notification], None]
