"""FastAPI dependencies for insights endpoints."""

from typing import Annotated

from fastapi import Depends

from cpq.api.v1.dependencies import StoreDep
from cpq.services.insights.cache import InsightsCache
from cpq.services.insights.insights_service import InsightsService
from cpq.utils.redis import redis_client


def get_insights_cache() -> InsightsCache:
    return InsightsCache(redis_client)


async def get_insights_service(
    store: StoreDep,
    cache: Annotated[InsightsCache, Depends(get_insights_cache)],
) -> InsightsService:
    return InsightsService(store, cache)


InsightsServiceDep = Annotated[InsightsService, Depends(get_insights_service)]
