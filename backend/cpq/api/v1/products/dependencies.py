"""FastAPI dependencies for product endpoints."""

from typing import Annotated

from fastapi import Depends

from cpq.api.v1.dependencies import StoreDep
from cpq.services.products.product_service import ProductService


async def get_product_service(store: StoreDep) -> ProductService:
    """Get a ProductService instance bound to the document store."""
    return ProductService(store)


ProductServiceDep = Annotated[ProductService, Depends(get_product_service)]
