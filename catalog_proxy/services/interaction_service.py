"""Interaction service — validates a property question, answers it and records it."""
import re
import uuid
from datetime import datetime, timezone
from typing import Optional

from catalog_proxy.core.exceptions import ValidationError
from catalog_proxy.core.logging import get_logger
from catalog_proxy.schemas.interaction_schema import (
    InteractionCreate,
    InteractionRead,
    PropertyContext,
)
from catalog_proxy.services.answer_service import PropertyAnswerer
from catalog_proxy.services.catalog_service import CatalogService
from catalog_proxy.services.interaction_store import InteractionStore

logger = get_logger(__name__)

MAX_QUESTION_LENGTH = 500
MAX_BODY_BYTES = 4096

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f\u200b-\u200f\u202a-\u202e\u2060-\u206f\ufeff]+")

INJECTION_MARKERS = ("ignore previous", "system:", "bearer ", "sk-", "override", "jailbreak")


def sanitize(value: Optional[str]) -> str:
    """Trim and strip control/format characters."""
    if not value:
        return ""
    return _CONTROL_CHARS.sub("", value.strip())


def is_prompt_injection(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in INJECTION_MARKERS)


def build_context(item) -> PropertyContext:
    return PropertyContext(
        id=item.id,
        precio=item.precio,
        habitaciones=item.habitaciones,
        banos=item.banos,
        parqueos=item.parqueos,
        m2_construccion=item.m2construccion if item.m2construccion is not None else item.area,
        ubicacion=item.ubicacion,
    )


class InteractionService:
    def __init__(
        self,
        catalog: CatalogService,
        answerer: PropertyAnswerer,
        store: InteractionStore,
    ):
        self.catalog = catalog
        self.answerer = answerer
        self.store = store

    def validate(self, payload: InteractionCreate) -> InteractionCreate:
        user_id = sanitize(payload.user_id)
        pregunta = sanitize(payload.pregunta)
        if not user_id or not pregunta:
            raise ValidationError("Campos requeridos: userId, pregunta")
        if len(pregunta) > MAX_QUESTION_LENGTH:
            raise ValidationError("Pregunta muy larga")
        if is_prompt_injection(pregunta):
            raise ValidationError("Contenido no permitido")
        return payload.model_copy(update={"user_id": user_id, "pregunta": pregunta})

    async def ask(self, payload: InteractionCreate) -> InteractionRead:
        payload = self.validate(payload)

        context = None
        if payload.propiedad_id is not None:
            item = await self.catalog.find_item(payload.propiedad_id)
            if item is None:
                logger.info("Property %s not in catalog, answering without context", payload.propiedad_id)
            else:
                context = build_context(item)

        respuesta = await self.answerer.ask(payload.pregunta, context)
        interaction = InteractionRead(
            id=str(uuid.uuid4()),
            user_id=payload.user_id,
            propiedad_id=payload.propiedad_id,
            pregunta=payload.pregunta,
            respuesta=respuesta,
            status="respondida",
            created_at=datetime.now(timezone.utc),
        )
        self.store.add(interaction)
        return interaction
