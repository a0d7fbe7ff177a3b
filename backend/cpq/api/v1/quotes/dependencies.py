"""FastAPI dependencies for quote endpoints."""

from collections.abc import Callable
from typing import Annotated, Any

from fastapi import Depends

from cpq.api.v1.dependencies import StoreDep
from cpq.services.email.quote_email_service import QuoteEmailService
from cpq.services.quotes.quote_service import QuoteService
from cpq.tasks import send_quote_email

EmailDispatcher = Callable[..., Any]


async def get_quote_service(store: StoreDep) -> QuoteService:
    """Get a QuoteService instance bound to the document store."""
    return QuoteService(store)


async def get_quote_email_service(store: StoreDep) -> QuoteEmailService:
    return QuoteEmailService(store)


def get_email_dispatcher() -> EmailDispatcher:
    """Enqueue function for the quote e-mail task."""
    return send_quote_email.send


QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]
QuoteEmailServiceDep = Annotated[QuoteEmailService, Depends(get_quote_email_service)]
EmailDispatcherDep = Annotated[EmailDispatcher, Depends(get_email_dispatcher)]
