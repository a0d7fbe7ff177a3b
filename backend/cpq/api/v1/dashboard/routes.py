"""Dashboard API endpoints."""

from fastapi import APIRouter, Query

from cpq.api.v1.dashboard.dependencies import DashboardServiceDep
from cpq.api.v1.dependencies import TenantLogContext
from cpq.api.v1.quotes.schemas import QuoteResponse
from cpq.services.dashboard.stats_service import ClientRanking, DashboardStats, FunnelStep

router = APIRouter(prefix="/tenants/{tenant_id}/dashboard", tags=["dashboard"], dependencies=[TenantLogContext])


@router.get("/stats", response_model=DashboardStats, operation_id="getDashboardStats")
async def get_stats(tenant_id: str, service: DashboardServiceDep) -> DashboardStats:
    """Approved amount, quotes created, approval rate and client count."""
    return await service.stats(tenant_id)


@router.get("/recent", response_model=list[QuoteResponse], operation_id="getRecentQuotes")
async def get_recent_quotes(
    tenant_id: str,
    service: DashboardServiceDep,
    limit: int = Query(default=5, ge=1, le=50),
) -> list[QuoteResponse]:
    quotes = await service.recent_quotes(tenant_id, limit=limit)
    return [QuoteResponse.from_record(q) for q in quotes]


@router.get("/funnel", response_model=list[FunnelStep], operation_id="getStatusFunnel")
async def get_status_funnel(tenant_id: str, service: DashboardServiceDep) -> list[FunnelStep]:
    return await service.status_funnel(tenant_id)


@router.get("/top-clients", response_model=list[ClientRanking], operation_id="getTopClients")
async def get_top_clients(
    tenant_id: str,
    service: DashboardServiceDep,
    limit: int = Query(default=5, ge=1, le=50),
) -> list[ClientRanking]:
    return await service.top_clients(tenant_id, limit=limit)
