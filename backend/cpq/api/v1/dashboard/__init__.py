"""Dashboard API package."""

from cpq.api.v1.dashboard.routes import router

__all__ = ["router"]
