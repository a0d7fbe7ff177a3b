"""Mercure publishing service."""

import httpx
import jwt
import structlog

from cpq.config import settings
from cpq.services.mercure.events import BaseMercureEvent
from cpq.utils.request_retry import RequestRetryConfig, get_request_retrying

logger = structlog.get_logger(__name__)

# Retry config for Mercure publishing (quick retries, short waits)
MERCURE_RETRY_CONFIG = RequestRetryConfig(max_attempts=3, min_wait=0.5, max_wait=2.0)


class MercurePublishService:
    """Service for publishing events to the Mercure hub.

    Events know their own topics via get_topics(), so this service just
    publishes whatever event it is given:

        mercure = MercurePublishService()
        await mercure.publish(QuoteUpdateEvent(tenant_id="t1", quote_id="abc"))
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self._transport = transport

    def _create_jwt(self) -> str:
        """Create a JWT token granting permission to publish to any topic."""
        return jwt.encode(
            {"mercure": {"publish": ["*"]}},
            settings.mercure_publisher_jwt_key,
            algorithm="HS256",
        )

    async def publish(self, event: BaseMercureEvent) -> None:
        """Publish any Mercure event.

        Retries on network errors, logs and swallows errors after retries are exhausted.
        """
        if not settings.mercure_publisher_jwt_key:
            logger.warning("Mercure publisher JWT key not configured, skipping publish")
            return

        topics = event.get_topics()
        token = self._create_jwt()

        async def make_request(client: httpx.AsyncClient) -> None:
            # Mercure expects form data
            response = await client.post(
                settings.mercure_url,
                data={"topic": topics, "data": event.model_dump_json()},
                headers={"Authorization": f"Bearer {token}"},
                timeout=5.0,
            )
            response.raise_for_status()

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                async for attempt in get_request_retrying(MERCURE_RETRY_CONFIG):
                    with attempt:
                        if attempt.retry_state.attempt_number > 1:
                            logger.warning(
                                "Retrying Mercure publish",
                                topics=topics,
                                attempt=attempt.retry_state.attempt_number,
                            )
                        await make_request(client)

            logger.info("Published Mercure event", topics=topics, type=event.type)
        except httpx.HTTPError as e:
            # Publishing failures shouldn't fail the request that triggered them
            logger.error("Failed to publish Mercure event", error=str(e), topics=topics)
