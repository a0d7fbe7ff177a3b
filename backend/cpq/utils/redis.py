"""Shared async Redis client."""

import redis.asyncio as redis

from cpq.config import settings

# Shared client - connections are created lazily on first command
redis_client: redis.Redis = redis.from_url(settings.redis_url, decode_responses=True)
