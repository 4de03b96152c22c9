"""FastAPI application factory and startup configuration.

Services (catalog cache, NLQ translator, interaction store) are built once per
process by `init_services` and stored on `app.state`. The lifespan calls it
at startup unless the services were already wired (tests do that themselves
with mock transports).
"""
from contextlib import asynccontextmanager
from typing import Optional
from uuid import uuid4

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog_proxy.config import Settings, settings
from catalog_proxy.core.exceptions import (
    NlqFailedError,
    NotFoundError,
    RateLimitError,
    ValidationError,
)
from catalog_proxy.core.logging import get_logger, set_correlation_id, setup_logging
from catalog_proxy.core.rate_limit import FixedWindowRateLimiter
from catalog_proxy.api.responses import fail, ok
from catalog_proxy.api.v1.catalog import router as catalog_router
from catalog_proxy.api.v1.debug import router as debug_router
from catalog_proxy.api.v1.interactions import router as interactions_router
from catalog_proxy.api.v1.nlq import router as nlq_router
from catalog_proxy.services.answer_service import build_answerer
from catalog_proxy.services.catalog_cache import CatalogCache
from catalog_proxy.services.catalog_fetcher import CatalogFetcher
from catalog_proxy.services.catalog_service import CatalogService
from catalog_proxy.services.completion_service import CompletionClient, build_completion_client
from catalog_proxy.services.interaction_service import InteractionService
from catalog_proxy.services.interaction_store import InMemoryInteractionStore, InteractionStore
from catalog_proxy.services.nlq_service import NlqTranslator

logger = get_logger(__name__)


def init_services(
    application: FastAPI,
    app_settings: Settings,
    *,
    http_client: Optional[httpx.AsyncClient] = None,
    completion: Optional[CompletionClient] = None,
    store: Optional[InteractionStore] = None,
) -> None:
    """Build the service graph and attach it to `application.state`."""
    client = http_client or httpx.AsyncClient(follow_redirects=True)
    fetcher = CatalogFetcher(
        client,
        app_settings.catalog_url,
        api_key=app_settings.catalog_api_key,
        timeout=app_settings.catalog_timeout_seconds,
    )
    catalog = CatalogService(
        fetcher,
        CatalogCache(),
        ttl_seconds=app_settings.cache_seconds,
        default_limit=app_settings.lite_default_limit,
    )
    completion = completion or build_completion_client(app_settings, client)

    application.state.settings = app_settings
    application.state.http_client = client
    application.state.owns_http_client = http_client is None
    application.state.catalog_service = catalog
    application.state.completion = completion
    application.state.nlq_translator = NlqTranslator(catalog, completion)
    application.state.interaction_service = InteractionService(
        catalog,
        build_answerer(completion, catalog),
        store or InMemoryInteractionStore(),
    )
    application.state.nlq_rate_limiter = FixedWindowRateLimiter(
        app_settings.nlq_rate_limit_requests,
        app_settings.nlq_rate_limit_window,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    setup_logging()
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)

    if not hasattr(app.state, "catalog_service"):
        init_services(app, settings)
    logger.info(
        "Catalog %s cached for %ss, completion provider: %s",
        app.state.settings.catalog_url,
        app.state.settings.cache_seconds,
        getattr(app.state.completion, "model", "unknown"),
    )

    yield

    if getattr(app.state, "owns_http_client", False):
        await app.state.http_client.aclose()
    logger.info("Shutting down %s", settings.app_name)


def create_app(app_settings: Settings = settings) -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title=app_settings.app_name,
        version=app_settings.app_version,
        description="Partner catalog proxy with cached listings and natural-language search.",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @application.middleware("http")
    async def add_trace_id(request: Request, call_next):
        request.state.trace_id = str(uuid4())
        set_correlation_id(request.state.trace_id)
        response = await call_next(request)
        response.headers["X-Trace-Id"] = request.state.trace_id
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        trace_id = getattr(request.state, "trace_id", None)
        logger.exception("Unhandled exception [trace_id=%s]", trace_id, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=fail("Error interno", request, errors=["Internal server error"]),
        )

    @application.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content=fail(str(exc), request))

    @application.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=fail(str(exc), request))

    @application.exception_handler(RateLimitError)
    async def rate_limit_handler(request: Request, exc: RateLimitError):
        return JSONResponse(status_code=429, content=fail(str(exc), request))

    @application.exception_handler(NlqFailedError)
    async def nlq_failed_handler(request: Request, exc: NlqFailedError):
        return JSONResponse(
            status_code=502,
            content=fail(
                str(exc),
                request,
                errors=[NlqFailedError.code],
                meta={"latency_ms": exc.latency_ms},
            ),
        )

    application.include_router(catalog_router, tags=["catalog"])
    application.include_router(nlq_router, prefix="/api", tags=["nlq"])
    application.include_router(interactions_router, tags=["interactions"])
    if app_settings.debug_enable:
        application.include_router(debug_router, prefix="/debug", tags=["debug"])

    @application.get("/health", tags=["system"])
    async def health_check(request: Request):
        catalog: CatalogService = request.app.state.catalog_service
        return ok(
            {
                "status": "healthy",
                "version": app_settings.app_version,
                "cache_entries": len(catalog.cache),
                "completion_model": getattr(request.app.state.completion, "model", None),
            },
            "Health check completed",
            request,
        )

    return application


app = create_app()
