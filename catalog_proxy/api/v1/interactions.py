"""Interactions API router — property questions and their history.
/interactions, /metrics/interactions"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request

from catalog_proxy.api.deps import get_interaction_service
from catalog_proxy.api.responses import ok
from catalog_proxy.core.exceptions import ValidationError
from catalog_proxy.schemas.base_schema import ApiResponse
from catalog_proxy.schemas.interaction_schema import (
    InteractionCreate,
    InteractionMetrics,
    InteractionRead,
)
from catalog_proxy.services.interaction_service import MAX_BODY_BYTES, InteractionService

router = APIRouter()


@router.get("/interactions", response_model=ApiResponse[List[InteractionRead]])
async def list_interactions(
    request: Request,
    user_id: Optional[str] = Query(None, alias="userId"),
    service: InteractionService = Depends(get_interaction_service),
):
    """Stored interactions, optionally for one user."""
    items = service.store.list(user_id)
    return ok(items, "Interactions listed successfully", request, meta={"total": len(items)})


@router.post("/interactions", response_model=ApiResponse[InteractionRead])
async def create_interaction(
    payload: InteractionCreate,
    request: Request,
    service: InteractionService = Depends(get_interaction_service),
):
    """Answer a question about the catalog or about one property and record it."""
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > MAX_BODY_BYTES:
        raise ValidationError("Body demasiado grande")

    interaction = await service.ask(payload)
    return ok(interaction, "Interaction answered", request)


@router.get("/metrics/interactions", response_model=ApiResponse[InteractionMetrics])
async def interaction_metrics(
    request: Request,
    service: InteractionService = Depends(get_interaction_service),
):
    """Interaction counts per status."""
    return ok(service.store.metrics(), "Interaction metrics retrieved successfully", request)
