"""Tests for POST /api/nlq."""
import pytest
from fastapi import FastAPI
from httpx import AsyncClient

from catalog_proxy.core.exceptions import CompletionError
from catalog_proxy.core.rate_limit import FixedWindowRateLimiter
from catalog_proxy.services.nlq_service import NlqTranslator
from tests.conftest import StubCompletion


@pytest.mark.asyncio
async def test_nlq_returns_matching_items(client: AsyncClient):
    response = await client.post("/api/nlq", json={"query": "casas con 3 habitaciones", "limit": 5})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True

    data = body["data"]
    assert [item["id"] for item in data["items"]] == [1]
    assert data["answer"] == "Aquí tienes 1 propiedades que coinciden con tu búsqueda."
    assert data["filter"]["tipo"] == "Casa"
    assert data["filter"]["habitaciones_min"] == 3
    assert data["filter"]["estado"] == "disponible"
    assert data["filter"]["limit"] == 5
    assert body["meta"]["limit"] == 5
    assert body["meta"]["total"] == 1
    assert body["meta"]["latency_ms"] >= 0


@pytest.mark.asyncio
async def test_nlq_english_answer(client: AsyncClient):
    response = await client.post("/api/nlq", json={"query": "casas", "locale": "en"})
    assert response.json()["data"]["answer"] == "Here are 1 properties matching your search."


@pytest.mark.asyncio
async def test_nlq_bath_filter_is_reported_with_accent(client: AsyncClient):
    response = await client.post("/api/nlq", json={"query": "2 baños", "estado": ""})
    data = response.json()["data"]
    assert data["filter"]["baños_min"] == 2
    assert sorted(item["id"] for item in data["items"]) == [1, 3, 5]


@pytest.mark.asyncio
async def test_nlq_empty_query_is_rejected(client: AsyncClient):
    response = await client.post("/api/nlq", json={"query": "   "})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "query vacío"


@pytest.mark.asyncio
async def test_nlq_completion_failure_reports_nlq_failed(app: FastAPI, client: AsyncClient):
    completion = StubCompletion(error=CompletionError("Completion provider unreachable"))
    app.state.nlq_translator = NlqTranslator(app.state.catalog_service, completion)

    response = await client.post("/api/nlq", json={"query": "casas en zona 10"})
    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == ["NLQ_FAILED"]
    assert body["trace_id"]
    assert body["trace_id"] == response.headers["X-Trace-Id"]
    assert body["meta"]["latency_ms"] >= 0
    assert body["data"] is None


@pytest.mark.asyncio
async def test_nlq_malformed_completion_still_answers(app: FastAPI, client: AsyncClient):
    app.state.nlq_translator = NlqTranslator(app.state.catalog_service, StubCompletion("sin json"))

    response = await client.post("/api/nlq", json={"query": "apartamentos en zona 10", "estado": ""})
    assert response.status_code == 200
    assert [item["id"] for item in response.json()["data"]["items"]] == [5]


@pytest.mark.asyncio
async def test_nlq_rate_limit(app: FastAPI, client: AsyncClient):
    app.state.nlq_rate_limiter = FixedWindowRateLimiter(limit=2, window=60)

    for _ in range(2):
        assert (await client.post("/api/nlq", json={"query": "casas"})).status_code == 200

    refused = await client.post("/api/nlq", json={"query": "casas"})
    assert refused.status_code == 429
    assert refused.json()["success"] is False


@pytest.mark.asyncio
async def test_nlq_query_too_long_is_rejected(client: AsyncClient):
    response = await client.post("/api/nlq", json={"query": "x" * 501})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_nlq_defaults_come_from_settings(client: AsyncClient):
    response = await client.post("/api/nlq", json={"query": "propiedades"})
    body = response.json()
    assert body["meta"]["limit"] == 10
    assert body["data"]["filter"]["estado"] == "disponible"
    assert sorted(item["id"] for item in body["data"]["items"]) == [1, 2, 4]
