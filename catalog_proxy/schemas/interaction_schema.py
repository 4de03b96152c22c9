"""Pydantic schemas for the /interactions API."""
from datetime import datetime
from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, Field


class InteractionCreate(BaseModel):
    user_id: Optional[str] = Field("u-demo", validation_alias=AliasChoices("userId", "user_id"))
    propiedad_id: Optional[int] = Field(None, validation_alias=AliasChoices("propiedadId", "propiedad_id"))
    pregunta: Optional[str] = None


class InteractionRead(BaseModel):
    id: str
    user_id: str
    propiedad_id: Optional[int] = None
    pregunta: str
    respuesta: Optional[str] = None
    status: str = "pendiente"
    created_at: datetime


class InteractionMetrics(BaseModel):
    counts: Dict[str, int]
    total: int


class PropertyContext(BaseModel):
    """The subset of a listing the answerer is allowed to talk about."""

    id: int
    precio: Optional[float] = None
    habitaciones: Optional[int] = None
    banos: Optional[float] = None
    parqueos: Optional[int] = None
    m2_construccion: Optional[float] = None
    ubicacion: Optional[str] = None
