"""FastAPI dependencies for client endpoints."""

from typing import Annotated

from fastapi import Depends

from cpq.api.v1.dependencies import StoreDep
from cpq.services.clients.client_service import ClientService


async def get_client_service(store: StoreDep) -> ClientService:
    """Get a ClientService instance bound to the document store."""
    return ClientService(store)


ClientServiceDep = Annotated[ClientService, Depends(get_client_service)]
