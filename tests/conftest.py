"""Test fixtures — fake upstream catalog, stub completion provider, async test client."""
from typing import AsyncGenerator, List, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from catalog_proxy.config import Settings
from catalog_proxy.main import create_app, init_services
from catalog_proxy.schemas.property_schema import PropertyItem, normalize_item
from catalog_proxy.services.catalog_cache import CatalogCache
from catalog_proxy.services.catalog_fetcher import CatalogFetcher
from catalog_proxy.services.catalog_service import CatalogService


CATALOG_URL = "https://catalog.test/api/propiedades/miraiz"


def make_item(**overrides) -> dict:
    """Create a raw upstream listing payload."""
    defaults = {
        "id": 1,
        "propiedad": "Casa Los Álamos",
        "tipo": "Casa",
        "clase_tipo": "Casa",
        "ubicacion": "Zona 10, Guatemala",
        "estado": "disponible",
        "precio": 250000,
        "habitaciones": 3,
        "baños": 2,
        "parqueos": 2,
        "area": 180,
        "año": 2018,
        "imagenes": [
            {"tipo": "portada", "url": "https://img.test/1.jpg", "formato": "jpg", "orden": 1},
        ],
    }
    defaults.update(overrides)
    return defaults


def sample_catalog_items() -> List[dict]:
    """Five listings, deliberately out of id order.

    id 1  Casa, zona 10, disponible, 3 hab, 2 baños, 2 parqueos, 180 m²
    id 2  Apartamento, zona 15, disponible, 2 hab, plain `banos` 1, plain `ano` 2021
    id 3  Casa, Mixco, vendido, 4 hab, 3 baños, 3 parqueos
    id 4  Lote/Terreno, zona 01 only in the project address, disponible
    id 5  Apartamento, zona 10, reservado, both bath and year spellings
    """
    return [
        make_item(
            id=3, propiedad="Casa Mixco", ubicacion="Mixco", estado="vendido",
            precio=400000, habitaciones=4, parqueos=3, area=240, imagenes=None,
            **{"baños": 3, "año": None},
        ),
        make_item(id=1),
        make_item(
            id=5, propiedad="Apto Reforma", tipo="Apartamento", clase_tipo="Apartamento",
            estado="reservado", precio=210000, habitaciones=3, parqueos=1, area=120, imagenes=None,
            **{"baños": 2, "banos": 1, "año": 2020, "ano": 2019},
        ),
        {
            "id": 2, "propiedad": "Apto Vista", "tipo": "Apartamento", "clase_tipo": "Apartamento",
            "ubicacion": "Zona 15, Guatemala", "estado": "disponible", "precio": 150000,
            "habitaciones": 2, "banos": 1, "parqueos": 1, "area": 90, "ano": 2021,
        },
        {
            "id": 4, "propiedad": "Lote Centro", "tipo": "Lote", "clase_tipo": "Terreno",
            "ubicacion": "Centro", "estado": "disponible", "precio": 80000, "area": 300,
            "proyecto": {"id": 9, "direccion": "5a avenida zona 01", "tipo": "Terreno"},
        },
    ]


def make_catalog(items: Optional[List[dict]] = None) -> dict:
    """Upstream envelope: {"success": true, "data": [...]}."""
    return {"success": True, "data": sample_catalog_items() if items is None else items}


def catalog_items(raw: Optional[List[dict]] = None) -> List[PropertyItem]:
    """Validated, normalized items for service-level tests."""
    return [normalize_item(PropertyItem.model_validate(r)) for r in (raw or sample_catalog_items())]


class FakeUpstream:
    """httpx.MockTransport handler standing in for the partner catalog API."""

    def __init__(self):
        self.payload = make_catalog()
        self.status_code = 200
        self.error: Optional[Exception] = None
        self.raw_body: Optional[bytes] = None
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.raw_body is not None:
            return httpx.Response(self.status_code, content=self.raw_body)
        return httpx.Response(self.status_code, json=self.payload)


class StubCompletion:
    """Completion provider double: fixed reply or error, records every prompt."""

    model = "stub"

    def __init__(self, reply: str = "{}", error: Optional[Exception] = None):
        self.reply = reply
        self.error = error
        self.calls: List[dict] = []

    async def complete(self, system: str, user: str, json_mode: bool = False) -> str:
        self.calls.append({"system": system, "user": user, "json_mode": json_mode})
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        catalog_url=CATALOG_URL,
        catalog_api_key="",
        cache_seconds=90,
        llm_provider="mock",
        debug_enable=True,
        nlq_rate_limit_requests=30,
        nlq_rate_limit_window=60,
    )


@pytest_asyncio.fixture(scope="function")
async def http_client(upstream: FakeUpstream) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as c:
        yield c


@pytest_asyncio.fixture(scope="function")
async def catalog_service(http_client: httpx.AsyncClient) -> CatalogService:
    fetcher = CatalogFetcher(http_client, CATALOG_URL, timeout=5.0)
    return CatalogService(fetcher, CatalogCache(), ttl_seconds=90, default_limit=20)


@pytest_asyncio.fixture(scope="function")
async def app(test_settings: Settings, http_client: httpx.AsyncClient) -> FastAPI:
    """App with services wired against the fake upstream and the mock provider."""
    application = create_app(test_settings)
    init_services(application, test_settings, http_client=http_client)
    return application


@pytest_asyncio.fixture(scope="function")
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Yield an HTTP test client bound to the wired app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
