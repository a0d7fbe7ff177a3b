"""Client API endpoints."""

from fastapi import APIRouter, HTTPException, status

from cpq.api.v1.clients.dependencies import ClientServiceDep
from cpq.api.v1.clients.schemas import ClientListResponse, ClientRequest, ClientResponse
from cpq.api.v1.dependencies import TenantLogContext
from cpq.services.clients.client_service import ClientNotFound

router = APIRouter(prefix="/tenants/{tenant_id}/clients", tags=["clients"], dependencies=[TenantLogContext])


@router.get("", response_model=ClientListResponse, operation_id="listClients")
async def list_clients(tenant_id: str, service: ClientServiceDep) -> ClientListResponse:
    """List a tenant's clients sorted by name."""
    clients = await service.list_clients(tenant_id)
    return ClientListResponse(clients=[ClientResponse.from_record(c) for c in clients], total=len(clients))


@router.post(
    "",
    response_model=ClientResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createClient",
)
async def create_client(tenant_id: str, body: ClientRequest, service: ClientServiceDep) -> ClientResponse:
    client = await service.create_client(tenant_id, name=body.name, email=body.email, phone=body.phone)
    return ClientResponse.from_record(client)


@router.get("/{client_id}", response_model=ClientResponse, operation_id="getClient")
async def get_client(tenant_id: str, client_id: str, service: ClientServiceDep) -> ClientResponse:
    try:
        return ClientResponse.from_record(await service.get_client(tenant_id, client_id))
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")


@router.put("/{client_id}", response_model=ClientResponse, operation_id="updateClient")
async def update_client(
    tenant_id: str, client_id: str, body: ClientRequest, service: ClientServiceDep
) -> ClientResponse:
    try:
        client = await service.update_client(tenant_id, client_id, name=body.name, email=body.email, phone=body.phone)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
    return ClientResponse.from_record(client)


@router.delete("/{client_id}", status_code=status.HTTP_204_NO_CONTENT, operation_id="deleteClient")
async def delete_client(tenant_id: str, client_id: str, service: ClientServiceDep) -> None:
    """Delete a client. Quotes already issued keep the client's name."""
    try:
        await service.delete_client(tenant_id, client_id)
    except ClientNotFound:
        raise HTTPException(status_code=404, detail="Client not found")
