"""Product catalog API endpoints."""

from fastapi import APIRouter, HTTPException, status

from cpq.api.v1.dependencies import TenantLogContext
from cpq.api.v1.products.dependencies import ProductServiceDep
from cpq.api.v1.products.schemas import ProductListResponse, ProductRequest, ProductResponse
from cpq.services.products.product_service import ProductNotFound

router = APIRouter(prefix="/tenants/{tenant_id}/products", tags=["products"], dependencies=[TenantLogContext])


@router.get("", response_model=ProductListResponse, operation_id="listProducts")
async def list_products(tenant_id: str, service: ProductServiceDep, active: bool = False) -> ProductListResponse:
    """List the catalog. Pass active=true to hide inactive products."""
    products = await service.list_products(tenant_id, active_only=active)
    return ProductListResponse(products=[ProductResponse.from_record(p) for p in products], total=len(products))


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="createProduct",
)
async def create_product(tenant_id: str, body: ProductRequest, service: ProductServiceDep) -> ProductResponse:
    return ProductResponse.from_record(await service.create_product(tenant_id, body))


@router.get("/{product_id}", response_model=ProductResponse, operation_id="getProduct")
async def get_product(tenant_id: str, product_id: str, service: ProductServiceDep) -> ProductResponse:
    try:
        return ProductResponse.from_record(await service.get_product(tenant_id, product_id))
    except ProductNotFound:
        raise HTTPException(status_code=404, detail="Product not found")


@router.put("/{product_id}", response_model=ProductResponse, operation_id="updateProduct")
async def update_product(
    tenant_id: str, product_id: str, body: ProductRequest, service: ProductServiceDep
) -> ProductResponse:
    try:
        return ProductResponse.from_record(await service.update_product(tenant_id, product_id, body))
    except ProductNotFound:
        raise HTTPException(status_code=404, detail="Product not found")


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT, operation_id="deleteProduct")
async def delete_product(tenant_id: str, product_id: str, service: ProductServiceDep) -> None:
    """Remove a product from the catalog. Existing quote lines are unaffected."""
    try:
        await service.delete_product(tenant_id, product_id)
    except ProductNotFound:
        raise HTTPException(status_code=404, detail="Product not found")
