"""Catalog schemas — the partner's listing payload as served by the upstream API.

The partner API is inconsistent about accents in two keys: bathrooms arrive as
`baños` or `banos` and the construction year as `año` or `ano`. Both variants
are accepted; `normalize_item` folds them into the accented slot, which is the
single value exposed to clients.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImagenItem(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    tipo: Optional[str] = None
    url: Optional[str] = None
    formato: Optional[str] = None


class Proyecto(BaseModel):
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[int] = None
    nombre_proyecto: Optional[str] = None
    direccion: Optional[str] = None
    aprobacion12cuotas: Optional[str] = None
    tipo: Optional[str] = None
    ubicacion: Optional[str] = None
    estado: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class PropertyItem(BaseModel):
    """One catalog listing. `id` is assigned upstream and doubles as the pagination cursor."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        coerce_numbers_to_str=True,
    )

    id: int
    propiedad: Optional[str] = None
    area: Optional[float] = None
    tipo: Optional[str] = None
    clase_tipo: Optional[str] = None
    modelo: Optional[str] = None
    ubicacion: Optional[str] = None
    estado: Optional[str] = None
    fin_de_obra: Optional[str] = None
    fase: Optional[str] = None
    bloqueo: Optional[str] = None
    precio: Optional[float] = None
    precio_sugerido: Optional[float] = None
    proyectos_id: Optional[int] = None
    habitaciones: Optional[int] = None
    banos_con_tilde: Optional[float] = Field(None, alias="baños")
    banos_sin_tilde: Optional[float] = Field(None, alias="banos")
    parqueos: Optional[int] = None
    m2construccion: Optional[float] = None
    largo: Optional[float] = None
    ancho: Optional[float] = None
    ano_con_tilde: Optional[int] = Field(None, alias="año")
    ano_sin_tilde: Optional[int] = Field(None, alias="ano")
    titulo: Optional[str] = None
    descripcion: Optional[str] = None
    detalles: Optional[str] = None
    descripcion_corta: Optional[str] = None
    caracteristicas: Optional[str] = None
    latitud: Optional[float] = None
    longitud: Optional[float] = None
    comision_referencia: Optional[str] = None
    comision_directa: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    proyecto: Optional[Proyecto] = None
    imagenes: Optional[List[ImagenItem]] = None

    @property
    def banos(self) -> Optional[float]:
        """Canonical bathroom count. The accented key wins when both are present."""
        return self.banos_con_tilde if self.banos_con_tilde is not None else self.banos_sin_tilde

    @property
    def ano(self) -> Optional[int]:
        """Canonical construction year. The accented key wins when both are present."""
        return self.ano_con_tilde if self.ano_con_tilde is not None else self.ano_sin_tilde

    def to_public_dict(self) -> Dict[str, Any]:
        """Serialize with the partner's key names, exposing one `baños` and one `año`."""
        return self.model_dump(
            by_alias=True,
            exclude={"banos_sin_tilde", "ano_sin_tilde"},
        )


def normalize_item(item: PropertyItem) -> PropertyItem:
    """Copy plain-key bath/year values into the accented slot when it is empty.

    Idempotent: a second pass finds the accented slot filled and changes nothing.
    """
    update: Dict[str, Any] = {}
    if item.banos_con_tilde is None and item.banos_sin_tilde is not None:
        update["banos_con_tilde"] = item.banos_sin_tilde
    if item.ano_con_tilde is None and item.ano_sin_tilde is not None:
        update["ano_con_tilde"] = item.ano_sin_tilde
    return item.model_copy(update=update) if update else item


class CatalogSnapshot(BaseModel):
    """Cached result of one upstream fetch."""

    success: bool = True
    items: List[PropertyItem] = []
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CatalogField(str, Enum):
    """Output fields a caller may request through a field mask."""

    ID = "id"
    PROPIEDAD = "propiedad"
    PRECIO = "precio"
    AREA = "area"
    TIPO = "tipo"
    UBICACION = "ubicacion"
    ESTADO = "estado"
    HABITACIONES = "habitaciones"
    BANOS = "baños"
    PARQUEOS = "parqueos"
    M2CONSTRUCCION = "m2construccion"
    ANO = "año"
    TITULO = "titulo"
    DESCRIPCION = "descripcion"
    LATITUD = "latitud"
    LONGITUD = "longitud"
    IMAGENES = "imagenes"
    PROYECTO = "proyecto"


# Requested name (lower-cased) -> output field. Unlisted names are ignored.
FIELD_ALIASES: Dict[str, CatalogField] = {field.value: field for field in CatalogField}
FIELD_ALIASES.update({
    "banos": CatalogField.BANOS,
    "ano": CatalogField.ANO,
    "imagenes.url": CatalogField.IMAGENES,
})
