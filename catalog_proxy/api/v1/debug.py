"""Debug router — compact catalog samples for tuning NLQ heuristics.
Mounted only when DEBUG_ENABLE=true. /debug"""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from catalog_proxy.api.deps import get_catalog_service
from catalog_proxy.api.responses import ok
from catalog_proxy.schemas.base_schema import ApiResponse
from catalog_proxy.schemas.filter_schema import clamp_limit
from catalog_proxy.services.catalog_service import CatalogService
from catalog_proxy.services.nlq_service import in_zone

router = APIRouter()


@router.get("/props-sample", response_model=ApiResponse[list])
async def props_sample(
    request: Request,
    catalog: CatalogService = Depends(get_catalog_service),
    limit: Optional[int] = Query(None),
    zone: Optional[int] = Query(None),
    q: Optional[str] = Query(None),
    min_banos: Optional[float] = Query(None, alias="minBanos"),
    casas_only: Optional[bool] = Query(None, alias="casasOnly"),
):
    """Cached items filtered by zone, substring, house class and bath minimum."""
    items = await catalog.get_items()
    size = clamp_limit(limit, 10)

    if zone is not None:
        items = [p for p in items if in_zone(p, zone)]
    if q:
        needle = q.lower()
        items = [
            p for p in items
            if any(
                needle in (text or "").lower()
                for text in (p.ubicacion, p.proyecto.direccion if p.proyecto else None, p.tipo, p.clase_tipo)
            )
        ]
    if casas_only:
        items = [p for p in items if "casa" in (p.clase_tipo or "").lower()]
    if min_banos is not None:
        items = [p for p in items if (p.banos or 0) >= min_banos]

    sample = [
        {
            "id": p.id,
            "tipo": p.tipo,
            "clase_tipo": p.clase_tipo,
            "propiedad": p.propiedad,
            "modelo": p.modelo,
            "ubicacion": p.ubicacion,
            "direccion": p.proyecto.direccion if p.proyecto else None,
            "banos": p.banos,
        }
        for p in items[:size]
    ]
    return ok(sample, "Sample retrieved", request, meta={"total": len(sample)})
