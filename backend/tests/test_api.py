import base64
from collections.abc import AsyncIterator
from typing import Any

import httpx
import pytest

from cpq.api.v1.board.dependencies import get_board_registry
from cpq.api.v1.dependencies import get_mercure_service, get_store
from cpq.api.v1.insights.dependencies import get_insights_service
from cpq.api.v1.quotes.dependencies import get_email_dispatcher
from cpq.main import app
from cpq.models.enums import QuoteStatus
from cpq.services.board.registry import BoardSessionRegistry
from cpq.services.insights.cache import InsightsCache
from cpq.services.insights.insights_service import InsightsService
from cpq.services.mercure.events import BoardNotificationEvent, QuoteListUpdateEvent, QuoteUpdateEvent
from cpq.store.base import counter_ref, quotes_collection
from tests.factories import TENANT, add_client, add_counter, add_product, add_quote
from tests.fakes import FakeOpenAI, FakeRedis, InMemoryDocumentStore, RecordingPublisher

BASE = f"/api/v1/tenants/{TENANT}"
REPORT = {"executive_summary": "Approvals are up."}
PDF = base64.b64encode(b"%PDF-1.4").decode("ascii")


class RecordingDispatcher:
    def __init__(self) -> None:
        self.calls: list[tuple[Any, ...]] = []

    def __call__(self, *args: Any) -> None:
        self.calls.append(args)


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def registry() -> BoardSessionRegistry:
    return BoardSessionRegistry()


@pytest.fixture
async def client(
    store: InMemoryDocumentStore,
    publisher: RecordingPublisher,
    dispatcher: RecordingDispatcher,
    registry: BoardSessionRegistry,
) -> AsyncIterator[httpx.AsyncClient]:
    add_counter(store, current=41)
    add_client(store, "c1", "Acme", email="buyer@acme.test")
    add_product(store, "p1", "Widget", "50.00")

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_mercure_service] = lambda: publisher
    app.dependency_overrides[get_email_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_board_registry] = lambda: registry
    app.dependency_overrides[get_insights_service] = lambda: InsightsService(
        store, InsightsCache(FakeRedis()), FakeOpenAI(REPORT)  # type: ignore[arg-type]
    )
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as http:
        yield http
    await registry.close_all()
    app.dependency_overrides.clear()


async def test_health(client: httpx.AsyncClient) -> None:
    response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "cpq-backend"}


async def test_request_id_is_echoed(client: httpx.AsyncClient) -> None:
    given = await client.get("/api/v1/health", headers={"x-request-id": "req-42"})
    generated = await client.get("/api/v1/health")

    assert given.headers["x-request-id"] == "req-42"
    assert len(generated.headers["x-request-id"]) == 26


class TestClients:
    async def test_create_and_list(self, client: httpx.AsyncClient) -> None:
        created = await client.post(f"{BASE}/clients", json={"name": "Globex", "email": "a@globex.test"})
        assert created.status_code == 201

        listed = await client.get(f"{BASE}/clients")
        assert [c["name"] for c in listed.json()["clients"]] == ["Acme", "Globex"]

    async def test_missing(self, client: httpx.AsyncClient) -> None:
        assert (await client.get(f"{BASE}/clients/nope")).status_code == 404

    async def test_update_and_delete(self, client: httpx.AsyncClient) -> None:
        updated = await client.put(f"{BASE}/clients/c1", json={"name": "Acme Corp", "phone": "555-0100"})
        assert updated.status_code == 200
        assert updated.json()["name"] == "Acme Corp"
        assert updated.json()["email"] is None

        assert (await client.delete(f"{BASE}/clients/c1")).status_code == 204
        assert (await client.delete(f"{BASE}/clients/c1")).status_code == 404
        assert (await client.put(f"{BASE}/clients/c1", json={"name": "X"})).status_code == 404


class TestProducts:
    async def test_crud(self, client: httpx.AsyncClient) -> None:
        created = await client.post(
            f"{BASE}/products", json={"name": "Install", "category": "Services", "unit_price": "80.00"}
        )
        assert created.status_code == 201
        product_id = created.json()["id"]

        listed = (await client.get(f"{BASE}/products")).json()
        assert [p["name"] for p in listed["products"]] == ["Widget", "Install"]

        updated = await client.put(f"{BASE}/products/{product_id}", json={"name": "Install", "active": False})
        assert updated.json()["active"] is False
        active = (await client.get(f"{BASE}/products", params={"active": "true"})).json()
        assert [p["name"] for p in active["products"]] == ["Widget"]

        assert (await client.delete(f"{BASE}/products/{product_id}")).status_code == 204
        assert (await client.get(f"{BASE}/products/{product_id}")).status_code == 404

    async def test_invalid_price(self, client: httpx.AsyncClient) -> None:
        response = await client.post(f"{BASE}/products", json={"name": "Widget", "unit_price": "-5"})

        assert response.status_code == 422


class TestQuotes:
    body = {
        "client_id": "c1",
        "line_items": [{"product_id": "p1", "product_name": "Widget", "quantity": "2", "unit_price": "50"}],
    }

    async def test_create_assigns_number(self, client: httpx.AsyncClient, publisher: RecordingPublisher) -> None:
        response = await client.post(f"{BASE}/quotes", json=self.body)

        assert response.status_code == 201
        data = response.json()
        assert data["number"] == "COT-0042"
        assert data["status"] == "draft"
        assert data["display_status"] == "draft"
        assert data["total"] == "119.00"
        assert publisher.events == [QuoteListUpdateEvent(tenant_id=TENANT)]

    async def test_create_failures(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        response = await client.post("/api/v1/tenants/other/quotes", json=self.body)

        assert response.status_code == 404  # client c1 belongs to tenant-a
        store.fail_transactions = True
        response = await client.post(f"{BASE}/quotes", json=self.body)
        assert response.status_code == 503
        assert await store.list_all(quotes_collection(TENANT)) == []

    async def test_unknown_product(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        body = {"client_id": "c1", "line_items": [{"product_id": "p9", "quantity": "1"}]}

        response = await client.post(f"{BASE}/quotes", json=body)

        assert response.status_code == 422
        assert response.json()["detail"] == "Unknown product: p9"
        assert store.raw(counter_ref(TENANT))["current_number"] == 41

    async def test_save_failure_after_allocation(
        self, client: httpx.AsyncClient, store: InMemoryDocumentStore, publisher: RecordingPublisher
    ) -> None:
        store.fail_creates = True

        response = await client.post(f"{BASE}/quotes", json=self.body)

        assert response.status_code == 503
        assert response.json()["detail"] == "Could not save the quote. Please try again."
        # The number is spent and never handed out again
        assert store.raw(counter_ref(TENANT))["current_number"] == 42
        assert await store.list_all(quotes_collection(TENANT)) == []
        assert publisher.events == []

    async def test_unknown_status_is_reported_raw(
        self, client: httpx.AsyncClient, store: InMemoryDocumentStore
    ) -> None:
        add_quote(store, "q1", "archived")

        data = (await client.get(f"{BASE}/quotes/q1")).json()

        assert data["status"] == "archived"
        assert data["display_status"] == "draft"

    async def test_set_status(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        add_quote(store, "q1", QuoteStatus.SENT)

        response = await client.patch(f"{BASE}/quotes/q1/status", json={"status": "approved"})

        assert response.status_code == 200
        assert response.json()["status"] == "approved"

    async def test_invalid_status(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        add_quote(store, "q1")

        response = await client.patch(f"{BASE}/quotes/q1/status", json={"status": "archived"})

        assert response.status_code == 422

    async def test_delete(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        add_quote(store, "q1")

        assert (await client.delete(f"{BASE}/quotes/q1")).status_code == 204
        assert (await client.get(f"{BASE}/quotes/q1")).status_code == 404

    async def test_send_email_is_queued(
        self, client: httpx.AsyncClient, store: InMemoryDocumentStore, dispatcher: RecordingDispatcher
    ) -> None:
        add_quote(store, "q1", number="COT-0042")

        response = await client.post(f"{BASE}/quotes/q1/email", json={"pdf_base64": PDF, "sender_name": "Ana"})

        assert response.status_code == 202
        assert response.json()["status"] == "queued"
        assert dispatcher.calls == [(TENANT, "q1", PDF, "buyer@acme.test", None, "Ana")]

    @pytest.mark.parametrize("pdf", ["not base64!", ""])
    async def test_send_email_rejects_bad_pdf(
        self, client: httpx.AsyncClient, store: InMemoryDocumentStore, dispatcher: RecordingDispatcher, pdf: str
    ) -> None:
        add_quote(store, "q1")

        response = await client.post(f"{BASE}/quotes/q1/email", json={"pdf_base64": pdf})

        assert response.status_code == 422
        assert dispatcher.calls == []

    async def test_send_email_without_address(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        add_client(store, "c2", "No Mail")
        add_quote(store, "q1", client_id="c2")

        response = await client.post(f"{BASE}/quotes/q1/email", json={"pdf_base64": PDF})

        assert response.status_code == 422


class TestBoard:
    async def open(self, client: httpx.AsyncClient) -> dict[str, Any]:
        response = await client.post(f"{BASE}/board/sessions")
        assert response.status_code == 201
        data: dict[str, Any] = response.json()
        return data

    @staticmethod
    def column(data: dict[str, Any], status: str) -> list[str]:
        return next([card["id"] for card in col["cards"]] for col in data["columns"] if col["status"] == status)

    async def test_drag_and_drop(
        self,
        client: httpx.AsyncClient,
        store: InMemoryDocumentStore,
        registry: BoardSessionRegistry,
        publisher: RecordingPublisher,
    ) -> None:
        add_quote(store, "q1", QuoteStatus.SENT)
        session = await self.open(client)
        url = f"{BASE}/board/sessions/{session['session_id']}"

        begin = await client.post(f"{url}/drag/begin", json={"quote_id": "q1"})
        assert begin.json()["accepted"]
        assert begin.json()["state"] == "dragging"

        over = await client.post(f"{url}/drag/over", json={"status": "approved"})
        assert self.column(over.json(), "approved") == ["q1"]

        end = await client.post(f"{url}/drag/end", params={"wait": "true"}, json={"status": "approved"})
        assert end.json()["accepted"]
        assert end.json()["state"] == "idle"
        assert end.json()["committing"] == []
        assert store.raw(quotes_collection(TENANT).doc("q1"))["status"] == "approved"

        assert (await client.delete(url)).status_code == 204
        assert len(registry) == 0
        assert [e.kind for e in publisher.events if isinstance(e, BoardNotificationEvent)] == ["success"]

    async def test_drop_outside_is_a_cancel(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        add_quote(store, "q1", QuoteStatus.SENT)
        session = await self.open(client)
        url = f"{BASE}/board/sessions/{session['session_id']}"

        await client.post(f"{url}/drag/begin", json={"quote_id": "q1"})
        await client.post(f"{url}/drag/over", json={"status": "rejected"})
        end = await client.post(f"{url}/drag/end", json={})

        assert self.column(end.json(), "sent") == ["q1"]
        assert store.update_calls == []

    async def test_target_must_be_single(self, client: httpx.AsyncClient) -> None:
        session = await self.open(client)
        url = f"{BASE}/board/sessions/{session['session_id']}"

        response = await client.post(f"{url}/drag/end", json={"status": "sent", "quote_id": "q1"})

        assert response.status_code == 422

    async def test_sessions_are_tenant_scoped(self, client: httpx.AsyncClient) -> None:
        session = await self.open(client)

        response = await client.get(f"/api/v1/tenants/other/board/sessions/{session['session_id']}")

        assert response.status_code == 404

    async def test_load_failure(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        store.fail_list_all = True

        assert (await client.post(f"{BASE}/board/sessions")).status_code == 503


class TestDashboard:
    async def test_stats(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        add_quote(store, "q1", QuoteStatus.APPROVED, total="100.00")
        add_quote(store, "q2", QuoteStatus.REJECTED)

        stats = (await client.get(f"{BASE}/dashboard/stats")).json()
        funnel = (await client.get(f"{BASE}/dashboard/funnel")).json()

        assert stats["quotes_created"] == 2
        assert stats["approval_rate"] == 50.0
        assert [step["status"] for step in funnel] == ["approved", "rejected"]

    async def test_limit_is_bounded(self, client: httpx.AsyncClient) -> None:
        assert (await client.get(f"{BASE}/dashboard/recent", params={"limit": 0})).status_code == 422


class TestInsights:
    async def test_generate_then_cached(self, client: httpx.AsyncClient, store: InMemoryDocumentStore) -> None:
        add_quote(store, "q1", QuoteStatus.APPROVED)

        first = await client.post(f"{BASE}/insights/refresh")

        assert first.status_code == 200
        assert first.json()["from_cache"] is False
        assert first.json()["report"]["executive_summary"] == "Approvals are up."


async def test_status_change_publishes_quote_event(
    client: httpx.AsyncClient, store: InMemoryDocumentStore, publisher: RecordingPublisher
) -> None:
    add_quote(store, "q1")

    await client.patch(f"{BASE}/quotes/q1/status", json={"status": "sent"})

    assert publisher.events == [QuoteUpdateEvent(tenant_id=TENANT, quote_id="q1")]
