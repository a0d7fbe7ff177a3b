"""Quote API endpoints."""

import base64
import binascii

import structlog
from fastapi import APIRouter, BackgroundTasks, HTTPException, status

from cpq.api.v1.dependencies import MercureServiceDep, TenantLogContext
from cpq.api.v1.quotes.dependencies import EmailDispatcherDep, QuoteEmailServiceDep, QuoteServiceDep
from cpq.api.v1.quotes.schemas import (
    QuoteListResponse,
    QuoteRequest,
    QuoteResponse,
    SendEmailRequest,
    StatusResponse,
    StatusUpdateRequest,
)
from cpq.services.clients.client_service import ClientNotFound
from cpq.services.email.exceptions import MissingClientEmail
from cpq.services.mercure.events import QuoteListUpdateEvent, QuoteUpdateEvent
from cpq.services.products.product_service import ProductNotFound
from cpq.services.quotes.exceptions import AllocationError, QuoteNotFound
from cpq.store.exceptions import StoreError

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/tenants/{tenant_id}/quotes", tags=["quotes"], dependencies=[TenantLogContext])


@router.get("", response_model=QuoteListResponse, operation_id="listQuotes")
async def list_quotes(tenant_id: str, service: QuoteServiceDep) -> QuoteListResponse:
    """List a tenant's quotes, newest first."""
    quotes = await service.list_quotes(tenant_id)
    return QuoteListResponse(quotes=[QuoteResponse.from_record(q) for q in quotes], total=len(quotes))


@router.post(
    "",
    response_model=QuoteResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createQuote",
)
async def create_quote(
    tenant_id: str,
    body: QuoteRequest,
    service: QuoteServiceDep,
    mercure: MercureServiceDep,
    background: BackgroundTasks,
) -> QuoteResponse:
    """Create a Draft quote with the next number in the tenant's sequence.

    Fails with 503 when no number can be allocated (nothing is saved then)
    or when the quote cannot be saved.
    """
    try:
        quote = await service.create_quote(tenant_id, body)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
    except ProductNotFound as e:
        raise HTTPException(status_code=422, detail=str(e))
    except AllocationError as e:
        logger.warning("Quote creation blocked", tenant_id=tenant_id, error=str(e))
        raise HTTPException(status_code=503, detail=str(e))
    except StoreError as e:
        logger.error("Quote creation failed", tenant_id=tenant_id, error=str(e))
        raise HTTPException(status_code=503, detail="Could not save the quote. Please try again.")

    background.add_task(mercure.publish, QuoteListUpdateEvent(tenant_id=tenant_id))
    return QuoteResponse.from_record(quote)


@router.get("/{quote_id}", response_model=QuoteResponse, operation_id="getQuote")
async def get_quote(tenant_id: str, quote_id: str, service: QuoteServiceDep) -> QuoteResponse:
    try:
        return QuoteResponse.from_record(await service.get_quote(tenant_id, quote_id))
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Quote not found")


@router.put("/{quote_id}", response_model=QuoteResponse, operation_id="updateQuote")
async def update_quote(
    tenant_id: str,
    quote_id: str,
    body: QuoteRequest,
    service: QuoteServiceDep,
    mercure: MercureServiceDep,
    background: BackgroundTasks,
) -> QuoteResponse:
    """Replace the editable fields of a quote. The number is kept."""
    try:
        quote = await service.update_quote(tenant_id, quote_id, body)
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Quote not found")
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
    except ProductNotFound as e:
        raise HTTPException(status_code=422, detail=str(e))

    background.add_task(mercure.publish, QuoteUpdateEvent(tenant_id=tenant_id, quote_id=quote_id))
    return QuoteResponse.from_record(quote)


@router.patch("/{quote_id}/status", response_model=QuoteResponse, operation_id="setQuoteStatus")
async def set_quote_status(
    tenant_id: str,
    quote_id: str,
    body: StatusUpdateRequest,
    service: QuoteServiceDep,
    mercure: MercureServiceDep,
    background: BackgroundTasks,
) -> QuoteResponse:
    try:
        quote = await service.set_status(tenant_id, quote_id, body.status)
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Quote not found")

    background.add_task(mercure.publish, QuoteUpdateEvent(tenant_id=tenant_id, quote_id=quote_id))
    return QuoteResponse.from_record(quote)


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT, operation_id="deleteQuote")
async def delete_quote(
    tenant_id: str,
    quote_id: str,
    service: QuoteServiceDep,
    mercure: MercureServiceDep,
    background: BackgroundTasks,
) -> None:
    try:
        await service.delete_quote(tenant_id, quote_id)
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Quote not found")

    background.add_task(mercure.publish, QuoteListUpdateEvent(tenant_id=tenant_id))


@router.post(
    "/{quote_id}/email",
    response_model=StatusResponse,
    status_code=status.HTTP_202_ACCEPTED,
    operation_id="sendQuoteEmail",
)
async def send_quote_email(
    tenant_id: str,
    quote_id: str,
    body: SendEmailRequest,
    service: QuoteServiceDep,
    email_service: QuoteEmailServiceDep,
    dispatch: EmailDispatcherDep,
) -> StatusResponse:
    """Queue the quote e-mail. The quote becomes Sent once delivery succeeds."""
    try:
        pdf = base64.b64decode(body.pdf_base64, validate=True)
    except binascii.Error:
        raise HTTPException(status_code=422, detail="pdf_base64 is not valid base64")
    if not pdf:
        raise HTTPException(status_code=422, detail="The quote PDF is required")

    try:
        quote = await service.get_quote(tenant_id, quote_id)
        address, _ = await email_service.resolve_recipient(tenant_id, quote, body.to)
    except QuoteNotFound:
        raise HTTPException(status_code=404, detail="Quote not found")
    except MissingClientEmail as e:
        raise HTTPException(status_code=422, detail=str(e))

    dispatch(tenant_id, quote_id, body.pdf_base64, address, body.reply_to, body.sender_name)
    logger.info("Queued quote e-mail", tenant_id=tenant_id, quote_id=quote_id, to=address)

    return StatusResponse(status="queued", message=f"Quote {quote.get('number')} queued for delivery to {address}")
