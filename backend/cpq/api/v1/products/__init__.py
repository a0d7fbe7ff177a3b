"""Products API package."""

from cpq.api.v1.products.routes import router

__all__ = ["router"]
