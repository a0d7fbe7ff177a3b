"""FastAPI dependencies for dashboard endpoints."""

from typing import Annotated

from fastapi import Depends

from cpq.api.v1.dependencies import StoreDep
from cpq.services.dashboard.stats_service import DashboardService


async def get_dashboard_service(store: StoreDep) -> DashboardService:
    return DashboardService(store)


DashboardServiceDep = Annotated[DashboardService, Depends(get_dashboard_service)]
