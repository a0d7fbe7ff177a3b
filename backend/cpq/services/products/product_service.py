"""Product catalog service."""

from decimal import Decimal

import structlog
from pydantic import BaseModel, Field

from cpq.models.base import utc_now
from cpq.services.exceptions import NotFoundError
from cpq.store.base import DocumentStore, Record, products_collection
from cpq.store.exceptions import DocumentNotFoundError

logger = structlog.get_logger(__name__)


class ProductNotFound(NotFoundError):
    """Product not found in the tenant's catalog."""

    def __init__(self, product_id: str | None = None):
        self.product_id = product_id
        super().__init__(f"Unknown product: {product_id}" if product_id else "Product not found")


class ProductDraft(BaseModel):
    """Editable fields of a catalog product."""

    name: str = Field(min_length=1)
    description: str | None = None
    sku: str | None = Field(default=None, max_length=64)
    category: str | None = None
    unit_price: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    active: bool = True


class ProductService:
    """Service for the tenant's product catalog."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def list_products(self, tenant_id: str, *, active_only: bool = False) -> list[Record]:
        """List products sorted by category, then name."""
        products = await self.store.list_all(products_collection(tenant_id))
        if active_only:
            products = [p for p in products if p.get("active", True)]
        return sorted(products, key=lambda p: ((p.get("category") or "").lower(), (p.get("name") or "").lower()))

    async def get_product(self, tenant_id: str, product_id: str) -> Record:
        product = await self.store.get(products_collection(tenant_id).doc(product_id))
        if product is None:
            raise ProductNotFound(product_id)
        return product

    async def create_product(self, tenant_id: str, draft: ProductDraft) -> Record:
        now = utc_now()
        product_id = await self.store.create(
            products_collection(tenant_id),
            {**draft.model_dump(), "created_at": now, "updated_at": now},
        )
        logger.info("Created product", tenant_id=tenant_id, product_id=product_id)
        return await self.get_product(tenant_id, product_id)

    async def update_product(self, tenant_id: str, product_id: str, draft: ProductDraft) -> Record:
        """Replace the product's fields. Quotes keep the name and price they were issued with."""
        try:
            await self.store.update_field(
                products_collection(tenant_id),
                product_id,
                {**draft.model_dump(), "updated_at": utc_now()},
            )
        except DocumentNotFoundError:
            raise ProductNotFound(product_id) from None
        return await self.get_product(tenant_id, product_id)

    async def delete_product(self, tenant_id: str, product_id: str) -> None:
        try:
            await self.store.delete(products_collection(tenant_id).doc(product_id))
        except DocumentNotFoundError:
            raise ProductNotFound(product_id) from None
        logger.info("Deleted product", tenant_id=tenant_id, product_id=product_id)
