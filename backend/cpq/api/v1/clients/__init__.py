"""Clients API package."""

from cpq.api.v1.clients.routes import router

__all__ = ["router"]
