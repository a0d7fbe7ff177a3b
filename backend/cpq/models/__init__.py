"""Database models."""

from sqlmodel import SQLModel

from cpq.models.client import Client
from cpq.models.enums import QuoteStatus
from cpq.models.product import Product
from cpq.models.quote import Quote, QuoteCounter

__all__ = [
    "SQLModel",
    "Client",
    "Product",
    "Quote",
    "QuoteCounter",
    "QuoteStatus",
]
