from datetime import UTC, datetime, timedelta

import pytest
import redis.asyncio as redis

from cpq.config import settings
from cpq.models.enums import QuoteStatus
from cpq.services.external.openai import OpenAIError
from cpq.services.insights.cache import InsightsCache, cache_key, is_cache_valid
from cpq.services.insights.context import build_insights_context
from cpq.services.insights.exceptions import InsightsInputTooLarge
from cpq.services.insights.insights_service import InsightsService
from cpq.services.insights.report import CachedInsights, InsightsReport
from tests.factories import TENANT, add_client, add_quote
from tests.fakes import FakeOpenAI, FakeRedis, InMemoryDocumentStore

REPORT = {
    "executive_summary": "Approvals are up.",
    "descriptive_insights": [
        {"title": "Acme leads", "description": "Acme has the most approvals.", "impact": "high", "kind": "opportunity"}
    ],
    "predictive_insights": [],
    "recommendations": [
        {"title": "Follow up", "description": "Call Globex.", "priority": "high", "estimated_impact": "+10%"}
    ],
}


class BrokenRedis(FakeRedis):
    async def get(self, key: str) -> str | None:
        raise redis.ConnectionError("down")

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        raise redis.ConnectionError("down")


def cached(generated_at: datetime, quote_count: int) -> CachedInsights:
    return CachedInsights(
        report=InsightsReport.model_validate(REPORT),
        generated_at=generated_at,
        quote_count=quote_count,
    )


@pytest.fixture
def redis_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def openai() -> FakeOpenAI:
    return FakeOpenAI(REPORT)


@pytest.fixture
def service(store: InMemoryDocumentStore, redis_client: FakeRedis, openai: FakeOpenAI) -> InsightsService:
    add_client(store, "c1", "Acme")
    add_quote(store, "q1", QuoteStatus.APPROVED)
    add_quote(store, "q2", QuoteStatus.SENT)
    return InsightsService(store, InsightsCache(redis_client, ttl_hours=24), openai)  # type: ignore[arg-type]


class TestCacheValidity:
    now = datetime(2026, 5, 1, 12, tzinfo=UTC)
    ttl = timedelta(hours=24)

    def test_missing_entry(self) -> None:
        assert not is_cache_valid(None, 3, self.now, self.ttl)

    def test_fresh_entry_with_same_count(self) -> None:
        assert is_cache_valid(cached(self.now - timedelta(hours=2), 3), 3, self.now, self.ttl)

    def test_expired_entry(self) -> None:
        assert not is_cache_valid(cached(self.now - timedelta(hours=25), 3), 3, self.now, self.ttl)

    def test_quote_count_changed(self) -> None:
        assert not is_cache_valid(cached(self.now - timedelta(hours=1), 3), 4, self.now, self.ttl)


async def test_generates_and_caches(service: InsightsService, redis_client: FakeRedis, openai: FakeOpenAI) -> None:
    result = await service.get_insights(TENANT)

    assert not result.from_cache
    assert result.quote_count == 2
    assert result.report.executive_summary == "Approvals are up."
    assert len(openai.calls) == 1
    assert cache_key(TENANT) in redis_client.values
    assert redis_client.expiry[cache_key(TENANT)] == 24 * 3600


async def test_serves_cache_until_quote_count_changes(
    service: InsightsService, store: InMemoryDocumentStore, openai: FakeOpenAI
) -> None:
    await service.get_insights(TENANT)

    second = await service.get_insights(TENANT)
    assert second.from_cache
    assert len(openai.calls) == 1

    add_quote(store, "q3", QuoteStatus.DRAFT)
    third = await service.get_insights(TENANT)
    assert not third.from_cache
    assert third.quote_count == 3
    assert len(openai.calls) == 2


async def test_force_bypasses_cache(service: InsightsService, openai: FakeOpenAI) -> None:
    await service.get_insights(TENANT)
    result = await service.get_insights(TENANT, force=True)

    assert not result.from_cache
    assert len(openai.calls) == 2


async def test_clear(service: InsightsService, redis_client: FakeRedis) -> None:
    await service.get_insights(TENANT)
    await service.clear(TENANT)

    assert redis_client.values == {}


async def test_redis_failure_is_a_cache_miss(store: InMemoryDocumentStore, openai: FakeOpenAI) -> None:
    add_quote(store, "q1")
    service = InsightsService(store, InsightsCache(BrokenRedis()), openai)  # type: ignore[arg-type]

    result = await service.get_insights(TENANT)

    assert not result.from_cache
    assert len(openai.calls) == 1


async def test_malformed_cache_entry_is_ignored(service: InsightsService, redis_client: FakeRedis) -> None:
    redis_client.values[cache_key(TENANT)] = "{not json"

    result = await service.get_insights(TENANT)

    assert not result.from_cache


async def test_unexpected_report_shape(store: InMemoryDocumentStore, redis_client: FakeRedis) -> None:
    service = InsightsService(store, InsightsCache(redis_client), FakeOpenAI({"summary": "x"}))  # type: ignore[arg-type]

    with pytest.raises(OpenAIError):
        await service.get_insights(TENANT)
    assert redis_client.values == {}


async def test_input_too_large(
    service: InsightsService, openai: FakeOpenAI, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(settings, "insights_max_context_chars", 10)

    with pytest.raises(InsightsInputTooLarge) as exc_info:
        await service.get_insights(TENANT)

    assert exc_info.value.max_size == 10
    assert openai.calls == []


def test_context_summarizes_business_data() -> None:
    now = datetime(2026, 5, 20, 15, tzinfo=UTC)
    quotes = [
        {
            "id": "q1",
            "number": "COT-0001",
            "status": "approved",
            "client_id": "c1",
            "client_name": "Acme",
            "total": "200.00",
            "created_at": datetime(2026, 5, 4, 15, tzinfo=UTC),
            "line_items": [{"product_name": "Widget", "quantity": "2", "unit_price": "100"}],
        },
        {
            "id": "q2",
            "number": "COT-0002",
            "status": "sent",
            "client_id": "c1",
            "client_name": "Acme",
            "total": "80.00",
            "created_at": datetime(2026, 4, 10, 15, tzinfo=UTC),
            "expires_at": datetime(2026, 5, 21, 15, tzinfo=UTC),
            "line_items": [{"product_name": "Widget", "quantity": "1", "unit_price": "80"}],
        },
        {
            "id": "q3",
            "number": "COT-0003",
            "status": "draft",
            "client_id": "c2",
            "client_name": "Globex",
            "total": "50.00",
            "created_at": datetime(2026, 5, 1, 15, tzinfo=UTC),
        },
    ]
    clients = [{"id": "c1", "name": "Acme"}, {"id": "c2", "name": "Globex"}]

    context = build_insights_context(quotes, clients, now)

    assert context["total_quotes"] == 3
    assert [q["number"] for q in context["quotes"]] == ["COT-0001", "COT-0003", "COT-0002"]

    acme = next(c for c in context["clients"] if c["name"] == "Acme")
    assert acme["quotes"] == 2
    assert acme["approved"] == 1
    assert acme["conversion_rate"] == 50.0

    widget = context["products"][0]
    assert widget["name"] == "Widget"
    assert widget["times_quoted"] == 2
    assert widget["times_approved"] == 1

    assert context["trends"]["this_month"]["total"] == 2
    assert context["trends"]["last_month"]["total"] == 1
    assert context["alerts"]["urgent"] == 1
    assert context["alerts"]["urgent_detail"][0]["number"] == "COT-0002"
    assert context["alerts"]["stale_drafts"] == 1
