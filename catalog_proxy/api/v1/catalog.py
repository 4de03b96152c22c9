"""Catalog API router — full catalog proxy and the cursor-paged lite listing."""
import hashlib
import json
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from catalog_proxy.api.deps import get_catalog_service
from catalog_proxy.api.responses import ok
from catalog_proxy.schemas.base_schema import ApiResponse
from catalog_proxy.schemas.filter_schema import PropertyFilter, QueryResult
from catalog_proxy.services.catalog_service import CatalogService

router = APIRouter()


def compute_etag(items: List[Dict[str, Any]]) -> str:
    body = json.dumps(items, sort_keys=True, ensure_ascii=False, default=str)
    return '"' + hashlib.sha256(body.encode("utf-8")).hexdigest()[:32] + '"'


@router.get("/properties", response_model=ApiResponse[List[Dict[str, Any]]])
async def get_properties(
    request: Request,
    response: Response,
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Full cached catalog. Upstream failures show up as an empty list, never as an error."""
    snapshot = await catalog.get_snapshot()
    items = [item.to_public_dict() for item in snapshot.items]

    etag = compute_etag(items)
    cache_control = f"public, max-age={catalog.ttl_seconds}"
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers={"ETag": etag, "Cache-Control": cache_control})

    response.headers["ETag"] = etag
    response.headers["Cache-Control"] = cache_control
    return ok(items, "Catalog retrieved successfully", request, meta={"total": len(items)})


@router.post("/properties/refresh", response_model=ApiResponse[None])
async def refresh_properties(
    request: Request,
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Drop every cached snapshot and shaped result; the next read goes upstream."""
    catalog.refresh()
    return ok(None, "Catalog cache cleared", request)


@router.get("/api/propiedades/miraiz-lite", response_model=ApiResponse[QueryResult])
async def list_properties_lite(
    request: Request,
    catalog: CatalogService = Depends(get_catalog_service),
    fields: Optional[str] = Query(None, description="Comma-separated field mask, e.g. id,precio,imagenes.url"),
    estado: Optional[str] = Query(None, description="One or more states, comma-separated"),
    after_id: Optional[int] = Query(None, alias="afterId", description="Cursor: last id already seen"),
    limit: Optional[int] = Query(None, description="Page size, clamped to 1..100"),
    precio_min: Optional[float] = Query(None),
    precio_max: Optional[float] = Query(None),
    habitaciones_min: Optional[int] = Query(None),
    banos_min: Optional[float] = Query(None),
    area_min: Optional[float] = Query(None),
    tipo: Optional[str] = Query(None),
):
    """Cursor-paginated, field-masked listing ordered by ascending id."""
    settings = request.app.state.settings
    flt = PropertyFilter(
        fields=fields if fields and fields.strip() else settings.lite_default_fields,
        estado=estado,
        cursor=after_id,
        limit=limit,
        precio_min=precio_min,
        precio_max=precio_max,
        habitaciones_min=habitaciones_min,
        banos_min=banos_min,
        area_min=area_min,
        tipo=tipo,
    )
    result, cached = await catalog.list_properties(flt)
    return ok(
        result,
        "Properties listed successfully",
        request,
        meta={"next_cursor": result.next_cursor, "cached": cached},
    )
