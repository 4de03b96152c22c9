"""NLQ API router — natural-language catalog search. /api/nlq"""
import time

from fastapi import APIRouter, Depends, Request

from catalog_proxy.api.deps import RequireNlqAdmission, get_nlq_translator
from catalog_proxy.api.responses import ok
from catalog_proxy.core.exceptions import CompletionError, NlqFailedError
from catalog_proxy.core.logging import get_logger
from catalog_proxy.schemas.base_schema import ApiResponse
from catalog_proxy.schemas.nlq_schema import NlqRequest, NlqResponse
from catalog_proxy.services.nlq_service import NlqTranslator

logger = get_logger(__name__)

router = APIRouter()


@router.post("/nlq", response_model=ApiResponse[NlqResponse], dependencies=[RequireNlqAdmission])
async def run_nlq(
    payload: NlqRequest,
    request: Request,
    translator: NlqTranslator = Depends(get_nlq_translator),
):
    """Translate a question into a filter and return the matching properties."""
    started = time.perf_counter()
    trace_id = getattr(request.state, "trace_id", "")
    settings = request.app.state.settings
    limit = payload.limit if payload.limit is not None else settings.default_limit
    estado = payload.estado if payload.estado is not None else settings.default_estado
    try:
        result = await translator.run(payload.query, limit, estado, payload.locale)
    except CompletionError as exc:
        latency_ms = int((time.perf_counter() - started) * 1000)
        logger.error(
            "NLQ error [trace_id=%s]",
            trace_id,
            exc_info=exc,
            extra={"trace_id": trace_id, "latency_ms": latency_ms},
        )
        raise NlqFailedError(
            "No fue posible consultar el catálogo",
            latency_ms=latency_ms,
            detail=exc.message,
        ) from exc

    latency_ms = int((time.perf_counter() - started) * 1000)
    return ok(
        NlqResponse(
            answer=result.answer,
            items=[item.to_public_dict() for item in result.items],
            filter=result.filter.model_dump(by_alias=True, exclude_none=True),
        ),
        "NLQ resolved successfully",
        request,
        meta={"limit": result.filter.limit, "total": len(result.items), "latency_ms": latency_ms},
    )
