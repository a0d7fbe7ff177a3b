"""Utility functions and helpers."""

from cpq.utils.datetime_utils import ensure_aware, parse_datetime, to_local

__all__ = [
    "ensure_aware",
    "parse_datetime",
    "to_local",
]
