"""Quotes API package."""

from cpq.api.v1.quotes.routes import router

__all__ = ["router"]
