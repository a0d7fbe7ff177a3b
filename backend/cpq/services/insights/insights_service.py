"""AI-generated business insights for a tenant."""

import json
from dataclasses import dataclass
from datetime import datetime

import structlog
from pydantic import ValidationError as PydanticValidationError

from cpq.config import settings
from cpq.models.base import utc_now
from cpq.services.external.openai import OpenAIError, OpenAIService
from cpq.services.insights.cache import InsightsCache
from cpq.services.insights.context import build_insights_context
from cpq.services.insights.exceptions import InsightsInputTooLarge
from cpq.services.insights.report import CachedInsights, InsightsReport
from cpq.store.base import DocumentStore, clients_collection, quotes_collection

logger = structlog.get_logger(__name__)

SYSTEM_PROMPT = """You are a business analyst specialised in CPQ and B2B sales.
Analyse the data provided and produce SPECIFIC, ACTIONABLE insights.
Avoid generic statements; use concrete numbers and names.
Look for hidden patterns, trends and opportunities the user may have missed.
Reply with a valid JSON object only."""

USER_PROMPT_TEMPLATE = """Analyse this CPQ business data and produce insights:

{data}

Reply with JSON of this shape:
{{
  "executive_summary": "One paragraph with the most important findings",
  "descriptive_insights": [
    {{"title": "...", "description": "...", "impact": "high|medium|low", "kind": "opportunity|warning|information"}}
  ],
  "predictive_insights": [
    {{"title": "...", "description": "...", "confidence": "high|medium|low", "kind": "opportunity|warning|information"}}
  ],
  "recommendations": [
    {{"title": "...", "description": "...", "priority": "high|medium|low", "estimated_impact": "..."}}
  ]
}}

Use concrete numbers and name specific products and clients where relevant."""


@dataclass(frozen=True)
class InsightsResult:
    report: InsightsReport
    generated_at: datetime
    quote_count: int
    from_cache: bool


class InsightsService:
    """Generates insights with OpenAI and caches them per tenant."""

    def __init__(self, store: DocumentStore, cache: InsightsCache, openai: OpenAIService | None = None):
        self.store = store
        self.cache = cache
        self.openai = openai or OpenAIService()

    async def get_insights(self, tenant_id: str, *, force: bool = False) -> InsightsResult:
        """Return cached insights when still current, otherwise generate new ones.

        Raises:
            InsightsInputTooLarge: The business data is too large to send
            OpenAIError: The model call failed or returned an unusable report
        """
        quotes = await self.store.list_all(quotes_collection(tenant_id))

        if not force:
            cached = await self.cache.get_valid(tenant_id, len(quotes))
            if cached is not None:
                logger.info("Serving cached insights", tenant_id=tenant_id)
                return InsightsResult(
                    report=cached.report,
                    generated_at=cached.generated_at,
                    quote_count=cached.quote_count,
                    from_cache=True,
                )

        clients = await self.store.list_all(clients_collection(tenant_id))
        now = utc_now()
        context = build_insights_context(quotes, clients, now)
        data = json.dumps(context, indent=2, default=str, ensure_ascii=False)
        if len(data) > settings.insights_max_context_chars:
            raise InsightsInputTooLarge(len(data), settings.insights_max_context_chars)

        logger.info("Generating insights", tenant_id=tenant_id, quote_count=len(quotes), context_size=len(data))
        raw = await self.openai.complete_json(SYSTEM_PROMPT, USER_PROMPT_TEMPLATE.format(data=data))
        try:
            report = InsightsReport.model_validate(raw)
        except PydanticValidationError as e:
            raise OpenAIError("OpenAI returned a report in an unexpected shape") from e

        await self.cache.store(tenant_id, CachedInsights(report=report, generated_at=now, quote_count=len(quotes)))
        return InsightsResult(report=report, generated_at=now, quote_count=len(quotes), from_cache=False)

    async def clear(self, tenant_id: str) -> None:
        await self.cache.clear(tenant_id)
        logger.info("Cleared insights cache", tenant_id=tenant_id)
