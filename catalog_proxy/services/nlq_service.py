"""NLQ service — turns a free-text question into a PropertyFilter and runs it over the cached catalog.

Pipeline:
1. Ask the completion provider for a filter object (malformed output -> empty filter)
2. The request limit always wins over whatever limit the model proposed
3. Backfill fields the model left unset with local regex inference
   (rooms, baths, m², parking, property type, "zona N")
4. Apply conjunctive predicates over the catalog snapshot
5. Narrow by zone or location keywords, dropping the narrowing when it empties the result
6. Cut to `limit` and build a one-line answer in Spanish or English

Completion transport failures are NOT handled here; they reach the HTTP
boundary as CompletionError and are reported as NLQ_FAILED.
"""
import re
from dataclasses import dataclass
from typing import List, Optional

from catalog_proxy.core.exceptions import ValidationError
from catalog_proxy.core.logging import get_logger
from catalog_proxy.schemas.filter_schema import DEFAULT_FILTER_FIELDS, PropertyFilter, clamp_limit
from catalog_proxy.schemas.nlq_schema import NlqRunResult
from catalog_proxy.schemas.property_schema import PropertyItem
from catalog_proxy.services.catalog_service import CatalogService
from catalog_proxy.services.completion_service import CompletionClient, extract_json
from catalog_proxy.services.query_service import matches_filter, state_equals

logger = get_logger(__name__)

FILTER_INSTRUCTION = f"""
Tu tarea es convertir la pregunta de un usuario sobre un catálogo inmobiliario en un objeto JSON de filtro.

Estructura del JSON:
{{
  "estado": "disponible|vendido|reservado",
  "limit": number,
  "fields": "string",
  "precio_min": number,
  "precio_max": number,
  "habitaciones_min": number,
  "baños_min": number,
  "area_min": number,
  "tipo": "Lote|Casa|Apartamento"
}}

REGLAS:
- Si el usuario no indica cuántos resultados quiere, usa "limit": 10.
- Incluye "estado" solo cuando el usuario lo pida explícitamente (ej: "propiedades vendidas").
- En "fields" incluye SIEMPRE "{DEFAULT_FILTER_FIELDS}".
- Expresa los filtros numéricos como rangos (precio_min, precio_max) o mínimos (habitaciones_min, baños_min, area_min).
- Responde únicamente con el objeto JSON, sin texto adicional.

Ejemplo: "casas con 3 cuartos y baratas" ->
{{"tipo": "Casa", "habitaciones_min": 3, "precio_max": 400000, "limit": 10, "fields": "{DEFAULT_FILTER_FIELDS}"}}
""".strip()

_ZONE = re.compile(r"\bzona\s*(\d{1,2})\b", re.IGNORECASE)
_ROOMS = re.compile(r"(\d{1,2})\s*(habitaciones?|cuartos?|dormitorios?)")
_BATHS = re.compile(r"(\d{1,2})\s*(bañ(?:os|o)|ban(?:os|o))")
_AREA = re.compile(r"(\d{2,4})\s*(m2|metros|metros cuadrados)")
_PARKING = re.compile(r"(\d{1,2})\s*(parqueos?|estacionamientos?|garajes?|garage)")

_TYPE_SYNONYMS = (
    (re.compile(r"\b(casas?)\b"), "Casa"),
    (re.compile(r"\b(apartamentos?)\b"), "Apartamento"),
    (re.compile(r"\b(terrenos?|lotes?)\b"), "Terreno"),
)

STOPWORDS = frozenset({
    "en", "de", "la", "el", "los", "las", "y", "con", "para", "por", "a", "un", "una",
    "unos", "unas", "del", "al", "lo", "su", "sus", "mi", "mis", "tu", "tus", "zona",
    "barato", "barata", "baratos", "baratas", "muy",
})
TYPE_WORDS = frozenset({
    "casa", "casas", "terreno", "terrenos", "apartamento", "apartamentos", "lote", "lotes",
})

ANSWER_TEMPLATES = {
    "en": "Here are {count} properties matching your search.",
    "es": "Aquí tienes {count} propiedades que coinciden con tu búsqueda.",
}


@dataclass
class LocalHints:
    """What the question says on its own, independent of the completion step."""

    zone: Optional[int] = None
    habitaciones_min: Optional[int] = None
    banos_min: Optional[float] = None
    area_min: Optional[float] = None
    parqueos_min: Optional[int] = None
    tipo: Optional[str] = None
    keywords: tuple = ()


def _first_int(pattern: re.Pattern, text: str) -> Optional[int]:
    match = pattern.search(text)
    return int(match.group(1)) if match else None


def extract_keywords(text: str) -> List[str]:
    """Location keyword candidates: tokens longer than one char that are not stopwords or type words."""
    tokens = text.replace(",", " ").replace(".", " ").split()
    return [t for t in tokens if len(t) > 1 and t not in STOPWORDS and t not in TYPE_WORDS]


def infer_tipo(text: str) -> Optional[str]:
    for pattern, tipo in _TYPE_SYNONYMS:
        if pattern.search(text):
            return tipo
    return None


def extract_hints(question: str) -> LocalHints:
    text = question.lower()
    return LocalHints(
        zone=_first_int(_ZONE, text),
        habitaciones_min=_first_int(_ROOMS, text),
        banos_min=_first_int(_BATHS, text),
        area_min=_first_int(_AREA, text),
        parqueos_min=_first_int(_PARKING, text),
        tipo=infer_tipo(text),
        keywords=tuple(extract_keywords(text)),
    )


def zone_pattern(zone: int) -> re.Pattern:
    """'zona 1', 'zona 01' and 'zona1' all match zone 1; 'zona 10' does not."""
    return re.compile(rf"\bzona\s*0?{zone}\b")


def _location_texts(item: PropertyItem) -> tuple:
    ubicacion = (item.ubicacion or "").lower()
    direccion = (item.proyecto.direccion if item.proyecto and item.proyecto.direccion else "").lower()
    return ubicacion, direccion


def in_zone(item: PropertyItem, zone: int) -> bool:
    pattern = zone_pattern(zone)
    return any(pattern.search(text) for text in _location_texts(item))


def mentions_any(item: PropertyItem, keywords) -> bool:
    texts = _location_texts(item)
    return any(keyword in text for keyword in keywords for text in texts)


def narrow_or_keep(candidates: List[PropertyItem], predicate, limit: int) -> List[PropertyItem]:
    """Apply a location predicate, falling back to the unrestricted candidates when nothing matches."""
    narrowed = [item for item in candidates if predicate(item)][:limit]
    return narrowed if narrowed else candidates[:limit]


def build_answer(count: int, locale: Optional[str]) -> str:
    key = "en" if (locale or "").strip().lower() == "en" else "es"
    return ANSWER_TEMPLATES[key].format(count=count)


class NlqTranslator:
    """Natural-language catalog search."""

    def __init__(self, catalog: CatalogService, completion: CompletionClient):
        self.catalog = catalog
        self.completion = completion

    async def request_filter(self, question: str) -> PropertyFilter:
        """Ask the completion provider for a filter; unusable output becomes an empty filter."""
        raw = await self.completion.complete(FILTER_INSTRUCTION, question, json_mode=True)
        try:
            payload = extract_json(raw)
            if not isinstance(payload, dict):
                raise ValueError("filter payload is not a JSON object")
            return PropertyFilter.model_validate(payload)
        except ValueError as exc:
            logger.warning("Completion returned an unusable filter, continuing with local inference: %s", exc)
            return PropertyFilter()

    async def run(
        self,
        question: str,
        limit: int,
        default_estado: Optional[str] = None,
        locale: Optional[str] = None,
    ) -> NlqRunResult:
        question = (question or "").strip()
        if not question:
            raise ValidationError("query vacío")

        flt = await self.request_filter(question)
        effective_limit = clamp_limit(limit, limit)
        hints = extract_hints(question)

        updates = {"limit": effective_limit}
        if flt.estado is None and default_estado and default_estado.strip():
            updates["estado"] = default_estado.strip()
        if flt.habitaciones_min is None and hints.habitaciones_min is not None:
            updates["habitaciones_min"] = hints.habitaciones_min
        if flt.banos_min is None and hints.banos_min is not None:
            updates["banos_min"] = hints.banos_min
        if flt.area_min is None and hints.area_min is not None:
            updates["area_min"] = hints.area_min
        if flt.tipo is None and hints.tipo is not None:
            updates["tipo"] = hints.tipo
        flt = flt.model_copy(update=updates)

        items = await self.catalog.get_items()
        candidates = [
            item for item in items
            if state_equals(item, flt.estado) and matches_filter(item, flt, hints.parqueos_min)
        ]

        if hints.zone is not None:
            matched = narrow_or_keep(candidates, lambda item: in_zone(item, hints.zone), effective_limit)
        elif hints.keywords:
            matched = narrow_or_keep(candidates, lambda item: mentions_any(item, hints.keywords), effective_limit)
        else:
            matched = candidates[:effective_limit]

        logger.info(
            "NLQ resolved %d of %d candidates (zone=%s, parqueos_min=%s)",
            len(matched), len(candidates), hints.zone, hints.parqueos_min,
        )
        return NlqRunResult(
            answer=build_answer(len(matched), locale),
            items=matched,
            filter=flt,
        )
