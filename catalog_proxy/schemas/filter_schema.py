"""Structured property filter shared by the lite listing path and the NLQ path."""
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MIN_LIMIT = 1
MAX_LIMIT = 100

# Mask the completion step is told to always include.
DEFAULT_FILTER_FIELDS = "id,propiedad,precio,imagenes.url,tipo,habitaciones,baños,area"


def clamp_limit(value: Optional[int], default: int) -> int:
    """Clamp a page size into [1, 100], using `default` when no value was given."""
    if value is None:
        value = default
    return max(MIN_LIMIT, min(MAX_LIMIT, int(value)))


class PropertyFilter(BaseModel):
    """Filter vocabulary. Every field is optional; None means "no constraint"."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    estado: Optional[str] = None
    limit: Optional[int] = None
    cursor: Optional[int] = None
    fields: Optional[str] = None
    precio_min: Optional[float] = None
    precio_max: Optional[float] = None
    habitaciones_min: Optional[int] = None
    banos_min: Optional[float] = Field(
        None,
        validation_alias=AliasChoices("baños_min", "banos_min"),
        serialization_alias="baños_min",
    )
    area_min: Optional[float] = None
    tipo: Optional[str] = None

    @field_validator("estado", "tipo", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("fields", mode="before")
    @classmethod
    def join_field_list(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            v = ",".join(str(part) for part in v)
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("limit")
    @classmethod
    def clamp(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return None
        return clamp_limit(v, v)


class QueryResult(BaseModel):
    """One page of catalog items.

    `next_cursor` is the last id of a full page when at least one more match
    follows it. A full page that happens to be the last one gets None, so
    `next_cursor` being set implies a full page but not the reverse.
    """

    success: bool = True
    items: List[Dict[str, Any]] = []
    next_cursor: Optional[int] = None
