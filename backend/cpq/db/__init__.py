"""Database package with engine and session management."""

from cpq.db.session import async_session_maker, create_tables, dispose_engine, engine

__all__ = [
    "async_session_maker",
    "create_tables",
    "dispose_engine",
    "engine",
]
