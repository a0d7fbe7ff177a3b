"""Status base classes with flag-based metadata.

This module provides a declarative way to define statuses with combinable
flags for metadata (delivered to the client, final outcome, won deal).

Usage:
    class MyStatus(StatusEnum):
        DRAFT = Status("draft", display="Draft")
        APPROVED = Status("approved", Flags.DELIVERED | Flags.FINAL | Flags.WON, display="Approved")

Flags describe a status for reporting purposes only. They never restrict
which status a record may move to.
"""

from dataclasses import dataclass
from enum import IntFlag, StrEnum, auto
from typing import Any


class Flags(IntFlag):
    """Status metadata flags.

    Flags:
        DELIVERED - The client has received the quote
        FINAL     - The outcome of the quote is decided
        WON       - The quote turned into a sale (requires DELIVERED and FINAL)
    """

    NONE = 0
    DELIVERED = auto()
    FINAL = auto()
    WON = auto()


@dataclass(frozen=True)
class FlagRule:
    """Rule for validating flag combinations.

    Attributes:
        when: All these bits must be present to trigger the rule
        required: These bits must also be present (when rule triggers)
        forbidden: These bits must be absent (when rule triggers)
    """

    when: Flags
    required: Flags = Flags.NONE
    forbidden: Flags = Flags.NONE

    def __post_init__(self) -> None:
        if self.when == Flags.NONE:
            raise ValueError("when may not be empty")
        if self.required & self.forbidden:
            raise ValueError("required and forbidden overlap")


FLAG_RULES: set[FlagRule] = {
    FlagRule(
        when=Flags.WON,
        required=Flags.DELIVERED | Flags.FINAL,
    ),
}


def validate_flags(value: Flags) -> None:
    """Validate flag combination against rules."""
    for rule in FLAG_RULES:
        if (value & rule.when) != rule.when:
            continue

        missing = rule.required & ~value
        present_forbidden = value & rule.forbidden

        if missing or present_forbidden:
            parts: list[str] = []
            if missing:
                missing_name = missing.name or str(missing)
                parts.append(f"{missing_name.replace('|', ' and ')} must be present")
            if present_forbidden:
                forbidden_name = present_forbidden.name or str(present_forbidden)
                parts.append(f"{forbidden_name.replace('|', ' and ')} cannot be present")

            when_name = rule.when.name or str(rule.when)
            when_txt = when_name.replace("|", " and ")
            raise ValueError(f"When {when_txt}: " + " and ".join(parts))


@dataclass(frozen=True, slots=True)
class Status:
    """Status definition with value, flags, and display name."""

    value: str
    flags: Flags = Flags.NONE
    display: str = ""

    def __post_init__(self) -> None:
        validate_flags(self.flags)

    @property
    def is_delivered(self) -> bool:
        return bool(self.flags & Flags.DELIVERED)

    @property
    def is_final(self) -> bool:
        return bool(self.flags & Flags.FINAL)

    @property
    def is_won(self) -> bool:
        return bool(self.flags & Flags.WON)


# Registry to store Status metadata for each enum class
_status_registries: dict[type, dict[str, Status]] = {}


class StatusEnum(StrEnum):
    """Base class for status enums with metadata support.

    Subclasses define members using Status objects:
        DRAFT = Status("draft", display="Draft")

    The enum value is the string (for the store), metadata accessible via .meta
    """

    def __new__(cls, status: Status | str) -> "StatusEnum":
        if isinstance(status, Status):
            value = status.value
            if cls not in _status_registries:
                _status_registries[cls] = {}
            _status_registries[cls][value] = status
        else:
            value = status

        obj = str.__new__(cls, value)
        obj._value_ = value
        return obj

    @property
    def meta(self) -> Status:
        """Get metadata for this status."""
        registry = _status_registries.get(type(self), {})
        return registry.get(self._value_, Status(self._value_))

    @property
    def display(self) -> str:
        return self.meta.display or self._value_

    @classmethod
    def delivered_states(cls) -> "frozenset[Any]":
        """States in which the client has received the quote (DELIVERED flag)."""
        return frozenset(s for s in cls if s.meta.is_delivered)

    @classmethod
    def final_states(cls) -> "frozenset[Any]":
        """States with a decided outcome (FINAL flag)."""
        return frozenset(s for s in cls if s.meta.is_final)

    @classmethod
    def won_states(cls) -> "frozenset[Any]":
        """States counted as a sale (WON flag)."""
        return frozenset(s for s in cls if s.meta.is_won)
