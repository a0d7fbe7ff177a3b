"""FastAPI dependencies shared by all v1 endpoints."""

from typing import Annotated

from fastapi import Depends

from cpq.db import async_session_maker
from cpq.logging import bind_log_context
from cpq.services.mercure.publish_service import MercurePublishService
from cpq.store.base import DocumentStore
from cpq.store.sql_store import SqlDocumentStore


def get_store() -> DocumentStore:
    """Get the document store backed by the application database."""
    return SqlDocumentStore(async_session_maker)


def get_mercure_service() -> MercurePublishService:
    """Get a MercurePublishService instance."""
    return MercurePublishService()


# Type aliases for cleaner endpoint signatures
StoreDep = Annotated[DocumentStore, Depends(get_store)]
MercureServiceDep = Annotated[MercurePublishService, Depends(get_mercure_service)]


async def bind_tenant_log_context(tenant_id: str) -> None:
    """Tag every log line of a tenant-scoped request with the tenant."""
    bind_log_context(tenant_id=tenant_id)


TenantLogContext = Depends(bind_tenant_log_context)
