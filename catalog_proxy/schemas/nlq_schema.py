"""Pydantic schemas for POST /api/nlq"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from catalog_proxy.schemas.filter_schema import PropertyFilter, clamp_limit
from catalog_proxy.schemas.property_schema import PropertyItem


class NlqRequest(BaseModel):
    query: str = Field("", max_length=500, description="Free-text question about the catalog")
    locale: Optional[str] = Field(None, description="'en' for English answers, Spanish otherwise")
    limit: Optional[int] = Field(None, description="Maximum number of items returned (clamped to 1..100)")
    estado: Optional[str] = Field(
        None,
        description="State applied when the question names none; omitted uses the configured default, \"\" disables it",
    )

    @field_validator("limit")
    @classmethod
    def clamp(cls, v: Optional[int]) -> Optional[int]:
        return None if v is None else clamp_limit(v, v)


class NlqRunResult(BaseModel):
    """Outcome of one translation: answer sentence, matched items and the filter actually applied."""

    answer: str
    items: List[PropertyItem]
    filter: PropertyFilter


class NlqResponse(BaseModel):
    answer: str
    items: List[Dict[str, Any]]
    filter: Dict[str, Any]
