"""Redis cache for generated insights reports.

A cached report is served only while it is younger than the TTL and the
tenant still has exactly as many quotes as when it was generated.
"""

from datetime import datetime, timedelta

import redis.asyncio as redis
import structlog
from pydantic import ValidationError

from cpq.config import settings
from cpq.models.base import utc_now
from cpq.services.insights.report import CachedInsights
from cpq.utils.datetime_utils import ensure_aware

logger = structlog.get_logger(__name__)


def cache_key(tenant_id: str) -> str:
    return f"insights:{tenant_id}"


def is_cache_valid(cached: CachedInsights | None, quote_count: int, now: datetime, ttl: timedelta) -> bool:
    if cached is None:
        return False
    if ensure_aware(now) - ensure_aware(cached.generated_at) > ttl:
        return False
    return cached.quote_count == quote_count


class InsightsCache:
    """Per-tenant insights cache. Redis failures degrade to cache misses."""

    def __init__(self, client: redis.Redis, *, ttl_hours: int | None = None):
        self.client = client
        self.ttl = timedelta(hours=settings.insights_cache_ttl_hours if ttl_hours is None else ttl_hours)

    async def load(self, tenant_id: str) -> CachedInsights | None:
        try:
            raw = await self.client.get(cache_key(tenant_id))
        except redis.RedisError as e:
            logger.warning("Insights cache read failed", tenant_id=tenant_id, error=str(e))
            return None
        if raw is None:
            return None
        try:
            return CachedInsights.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed insights cache entry", tenant_id=tenant_id)
            return None

    async def get_valid(self, tenant_id: str, quote_count: int, now: datetime | None = None) -> CachedInsights | None:
        """Return the cached report if it is still current."""
        cached = await self.load(tenant_id)
        if not is_cache_valid(cached, quote_count, now or utc_now(), self.ttl):
            if cached is not None:
                logger.info(
                    "Insights cache is stale",
                    tenant_id=tenant_id,
                    cached_count=cached.quote_count,
                    current_count=quote_count,
                )
            return None
        return cached

    async def store(self, tenant_id: str, entry: CachedInsights) -> None:
        try:
            await self.client.set(
                cache_key(tenant_id),
                entry.model_dump_json(),
                ex=max(1, int(self.ttl.total_seconds())),
            )
        except redis.RedisError as e:
            logger.warning("Insights cache write failed", tenant_id=tenant_id, error=str(e))

    async def clear(self, tenant_id: str) -> None:
        try:
            await self.client.delete(cache_key(tenant_id))
        except redis.RedisError as e:
            logger.warning("Insights cache clear failed", tenant_id=tenant_id, error=str(e))
