"""Query executor — filters and pages catalog items in memory.

Handles:
- Conjunctive predicates: price range, room/bath/area/parking minimums, type substring
- State matching: multi-value set membership for the lite listing path,
  single-value equality for the NLQ path
- Cursor pagination: ascending id, `id > cursor`, next cursor only when more items follow a full page
- Field masks: projection onto the CatalogField set; unknown names are ignored
"""
from typing import Any, Dict, Iterable, List, Optional, Set

from catalog_proxy.schemas.filter_schema import PropertyFilter, QueryResult, clamp_limit
from catalog_proxy.schemas.property_schema import (
    FIELD_ALIASES,
    CatalogField,
    PropertyItem,
)

DEFAULT_PAGE_SIZE = 20


def parse_states(estado: Optional[str]) -> Set[str]:
    """'Disponible, reservado' -> {'disponible', 'reservado'}; empty -> no constraint."""
    if not estado:
        return set()
    return {part.strip().lower() for part in estado.split(",") if part.strip()}


def state_in(item: PropertyItem, states: Set[str]) -> bool:
    return not states or (item.estado or "").lower() in states


def state_equals(item: PropertyItem, estado: Optional[str]) -> bool:
    return not estado or (item.estado or "").lower() == estado.lower()


def tipo_matches(item: PropertyItem, tipo: Optional[str]) -> bool:
    """Case-insensitive substring match against tipo, clase_tipo or the project's tipo."""
    if not tipo:
        return True
    needle = tipo.lower()
    candidates = [item.tipo, item.clase_tipo, item.proyecto.tipo if item.proyecto else None]
    return any(needle in value.lower() for value in candidates if value)


def matches_filter(
    item: PropertyItem,
    flt: PropertyFilter,
    parqueos_min: Optional[int] = None,
) -> bool:
    """Numeric and type predicates. Missing item values count as 0."""
    if flt.precio_min is not None and (item.precio or 0) < flt.precio_min:
        return False
    if flt.precio_max is not None and (item.precio or 0) > flt.precio_max:
        return False
    if flt.habitaciones_min is not None and (item.habitaciones or 0) < flt.habitaciones_min:
        return False
    if flt.banos_min is not None and (item.banos or 0) < flt.banos_min:
        return False
    if flt.area_min is not None and (item.area or 0) < flt.area_min:
        return False
    if parqueos_min is not None and (item.parqueos or 0) < parqueos_min:
        return False
    return tipo_matches(item, flt.tipo)


def parse_field_mask(fields: Optional[str]) -> Optional[List[CatalogField]]:
    """Resolve a comma-separated mask to known fields, in request order, without repeats.

    Returns None when no mask was requested (full items).
    """
    if fields is None:
        return None
    mask: List[CatalogField] = []
    for name in fields.split(","):
        field = FIELD_ALIASES.get(name.strip().lower())
        if field is not None and field not in mask:
            mask.append(field)
    return mask


def _field_value(item: PropertyItem, field: CatalogField) -> Any:
    if field is CatalogField.BANOS:
        return item.banos
    if field is CatalogField.ANO:
        return item.ano
    if field is CatalogField.IMAGENES:
        if item.imagenes is None:
            return None
        return [image.model_dump(include={"tipo", "url", "formato"}) for image in item.imagenes]
    if field is CatalogField.PROYECTO:
        return item.proyecto.model_dump() if item.proyecto else None
    return getattr(item, field.value)


def project_item(item: PropertyItem, mask: Optional[List[CatalogField]]) -> Dict[str, Any]:
    if mask is None:
        return item.to_public_dict()
    return {field.value: _field_value(item, field) for field in mask}


def execute_query(
    items: Iterable[PropertyItem],
    flt: PropertyFilter,
    default_limit: int = DEFAULT_PAGE_SIZE,
) -> QueryResult:
    """Apply `flt` to `items` and return one page ordered by ascending id."""
    limit = clamp_limit(flt.limit, default_limit)
    states = parse_states(flt.estado)

    selected = sorted(
        (
            item for item in items
            if state_in(item, states)
            and (flt.cursor is None or item.id > flt.cursor)
            and matches_filter(item, flt)
        ),
        key=lambda item: item.id,
    )
    page = selected[:limit]
    has_more = len(selected) > limit

    mask = parse_field_mask(flt.fields)
    return QueryResult(
        success=True,
        items=[project_item(item, mask) for item in page],
        next_cursor=page[-1].id if has_more else None,
    )
