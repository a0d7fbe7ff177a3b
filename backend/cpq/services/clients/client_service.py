"""Client record service."""

import structlog

from cpq.models.base import utc_now
from cpq.services.exceptions import NotFoundError
from cpq.store.base import DocumentStore, Record, clients_collection
from cpq.store.exceptions import DocumentNotFoundError

logger = structlog.get_logger(__name__)


class ClientNotFound(NotFoundError):
    """Client not found."""

    pass


class ClientService:
    """Service for client records."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_clients(self, tenant_id: str) -> list[Record]:
        clients = await self.store.list_all(clients_collection(tenant_id))
        return sorted(clients, key=lambda c: (c.get("name") or "").lower())

    async def get_client(self, tenant_id: str, client_id: str) -> Record:
        client = await self.store.get(clients_collection(tenant_id).doc(client_id))
        if client is None:
            raise ClientNotFound()
        return client

    async def create_client(
        self,
        tenant_id: str,
        *,
        name: str,
        email: str | None = None,
        phone: str | None = None,
    ) -> Record:
        collection = clients_collection(tenant_id)
        client_id = await self.store.create(
            collection,
            {"name": name, "email": email, "phone": phone, "created_at": utc_now()},
        )
        logger.info("Created client", tenant_id=tenant_id, client_id=client_id)
        return await self.get_client(tenant_id, client_id)

    async def update_client(
        self,
        tenant_id: str,
        client_id: str,
        *,
        name: str,
        email: str | None = None,
        phone: str | None = None,
    ) -> Record:
        """Replace a client's contact details. Existing quotes keep the name they were issued to."""
        try:
            await self.store.update_field(
                clients_collection(tenant_id),
                client_id,
                {"name": name, "email": email, "phone": phone},
            )
        except DocumentNotFoundError:
            raise ClientNotFound() from None
        return await self.get_client(tenant_id, client_id)

    async def delete_client(self, tenant_id: str, client_id: str) -> None:
        try:
            await self.store.delete(clients_collection(tenant_id).doc(client_id))
        except DocumentNotFoundError:
            raise ClientNotFound() from None
        logger.info("Deleted client", tenant_id=tenant_id, client_id=client_id)
