"""Insights API package."""

from cpq.api.v1.insights.routes import router

__all__ = ["router"]
