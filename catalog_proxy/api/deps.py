"""API dependencies — services wired at startup, request admission.

Services live on `app.state` (see `init_services` in main.py) so tests can
wire their own fakes without touching module globals.
"""
from fastapi import Depends, Request

from catalog_proxy.core.exceptions import RateLimitError
from catalog_proxy.core.rate_limit import FixedWindowRateLimiter
from catalog_proxy.services.catalog_service import CatalogService
from catalog_proxy.services.interaction_service import InteractionService
from catalog_proxy.services.nlq_service import NlqTranslator


def get_catalog_service(request: Request) -> CatalogService:
    return request.app.state.catalog_service


def get_nlq_translator(request: Request) -> NlqTranslator:
    return request.app.state.nlq_translator


def get_interaction_service(request: Request) -> InteractionService:
    return request.app.state.interaction_service


async def nlq_admission(request: Request) -> None:
    """Fixed-window limit per client address; refused hits answer 429."""
    limiter: FixedWindowRateLimiter = request.app.state.nlq_rate_limiter
    client_key = request.client.host if request.client else "anonymous"
    if not limiter.hit(client_key):
        raise RateLimitError(
            "Demasiadas consultas, intenta de nuevo en un momento",
            detail={"limit": limiter.limit, "window_seconds": limiter.window},
        )


# Shorthand para usar como dependency nos routers
RequireNlqAdmission = Depends(nlq_admission)
