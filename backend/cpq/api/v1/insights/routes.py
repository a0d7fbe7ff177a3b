"""Insights API endpoints."""

from fastapi import APIRouter, HTTPException, status

from cpq.api.v1.dependencies import TenantLogContext
from cpq.api.v1.insights.dependencies import InsightsServiceDep
from cpq.api.v1.insights.schemas import InsightsResponse
from cpq.services.external.openai import OpenAIConfigurationError, OpenAIError, OpenAIRateLimitError
from cpq.services.insights.exceptions import InsightsInputTooLarge
from cpq.services.insights.insights_service import InsightsService

router = APIRouter(prefix="/tenants/{tenant_id}/insights", tags=["insights"], dependencies=[TenantLogContext])


async def _insights(service: InsightsService, tenant_id: str, *, force: bool) -> InsightsResponse:
    try:
        result = await service.get_insights(tenant_id, force=force)
    except InsightsInputTooLarge as e:
        raise HTTPException(status_code=413, detail=str(e))
    except OpenAIRateLimitError:
        raise HTTPException(status_code=429, detail="Rate limit exceeded, try again in a few moments")
    except OpenAIConfigurationError:
        raise HTTPException(status_code=500, detail="Server configuration error")
    except OpenAIError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return InsightsResponse.from_result(result)


@router.get("", response_model=InsightsResponse, operation_id="getInsights")
async def get_insights(tenant_id: str, service: InsightsServiceDep) -> InsightsResponse:
    """Cached insights while current, otherwise freshly generated ones."""
    return await _insights(service, tenant_id, force=False)


@router.post("/refresh", response_model=InsightsResponse, operation_id="refreshInsights")
async def refresh_insights(tenant_id: str, service: InsightsServiceDep) -> InsightsResponse:
    """Regenerate insights regardless of the cache."""
    return await _insights(service, tenant_id, force=True)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, operation_id="clearInsights")
async def clear_insights(tenant_id: str, service: InsightsServiceDep) -> None:
    await service.clear(tenant_id)
