"""Answerers for single-property questions asked through /interactions."""
from typing import Optional, Protocol

from catalog_proxy.core.exceptions import CompletionError
from catalog_proxy.core.logging import get_logger
from catalog_proxy.schemas.interaction_schema import PropertyContext
from catalog_proxy.services.catalog_service import CatalogService
from catalog_proxy.services.completion_service import CompletionClient, MockCompletionClient

logger = get_logger(__name__)

NO_DATA = "No tengo ese dato en el catálogo."

GUARDRAIL_INSTRUCTION = (
    "Responde SOLO con los datos del contexto. "
    f"Si falta un dato, di: '{NO_DATA}'"
)


class PropertyAnswerer(Protocol):
    async def ask(self, question: str, context: Optional[PropertyContext]) -> str:
        ...


def _or_no_data(value, template: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        return NO_DATA
    return template.format(value)


class MockAnswerer:
    """Keyword-driven replies built straight from the property context."""

    def __init__(self, catalog: CatalogService):
        self.catalog = catalog

    async def ask(self, question: str, context: Optional[PropertyContext]) -> str:
        q = (question or "").lower()
        if context is None:
            total = len(await self.catalog.get_items())
            return (
                f"Tengo {total} propiedades en catálogo. "
                "Puedo responder sobre precio, habitaciones, baños, m² y ubicación."
            )

        if "precio" in q:
            return _or_no_data(context.precio, "El precio es {}.")
        if "habitac" in q:
            return _or_no_data(context.habitaciones, "Tiene {} habitaciones.")
        if "baño" in q or "banio" in q or "banos" in q:
            return _or_no_data(context.banos, "Tiene {} baños.")
        if "parqueo" in q:
            return _or_no_data(context.parqueos, "Tiene {} parqueos.")
        if "m2" in q or "metros" in q:
            return _or_no_data(context.m2_construccion, "Área construida: {} m².")
        if "ubic" in q:
            return _or_no_data(context.ubicacion, "Ubicación: {}.")
        return NO_DATA


def render_context(context: Optional[PropertyContext]) -> str:
    if context is None:
        return ""
    return "\n".join([
        "[contexto]",
        f"precio:{context.precio}",
        f"habitaciones:{context.habitaciones}",
        f"baños:{context.banos}",
        f"parqueos:{context.parqueos}",
        f"m2:{context.m2_construccion}",
        f"ubicacion:{context.ubicacion}",
        "[/contexto]",
    ])


class CompletionAnswerer:
    """Answers through the completion provider, restricted to the supplied context."""

    def __init__(self, completion: CompletionClient):
        self.completion = completion

    async def ask(self, question: str, context: Optional[PropertyContext]) -> str:
        prompt = f"{render_context(context)}\nPregunta: {question}".strip()
        try:
            answer = await self.completion.complete(GUARDRAIL_INSTRUCTION, prompt)
        except CompletionError as exc:
            logger.warning("Answerer provider failed, replying without data: %s", exc.message)
            return NO_DATA
        return answer.strip() or NO_DATA


def build_answerer(completion: CompletionClient, catalog: CatalogService) -> PropertyAnswerer:
    if isinstance(completion, MockCompletionClient):
        return MockAnswerer(catalog)
    return CompletionAnswerer(completion)
