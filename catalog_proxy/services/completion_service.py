"""Completion providers — the external LLM capability behind NLQ and interactions.

Providers:
- openai: OpenAI-compatible /chat/completions over the shared httpx client
- gemini: google-genai async client
- mock:   keyword rules, no network (default, and the fallback when a provider has no key)

Every provider returns raw text. Transport failures and error statuses are
raised as CompletionError; deciding what to do with malformed text is the
caller's job. No timeout is imposed here: cancelling the awaiting request
aborts the in-flight call.
"""
import json
import re
from typing import Any, Dict, Optional, Protocol

import httpx

from catalog_proxy.config import Settings
from catalog_proxy.core.exceptions import CompletionError
from catalog_proxy.core.logging import get_logger
from catalog_proxy.schemas.filter_schema import DEFAULT_FILTER_FIELDS

logger = get_logger(__name__)


class CompletionClient(Protocol):
    model: str

    async def complete(self, system: str, user: str, json_mode: bool = False) -> str:
        ...


def extract_json(text: str) -> Dict[str, Any]:
    """Parse a JSON object out of model output, tolerating code fences and surrounding prose."""
    candidate = (text or "").strip()
    if candidate.startswith("```"):
        candidate = candidate.strip("`")
        if candidate.lower().startswith("json"):
            candidate = candidate[4:]
        candidate = candidate.strip()
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        start = candidate.find("{")
        end = candidate.rfind("}")
        if start >= 0 and end > start:
            return json.loads(candidate[start: end + 1])
        raise


class OpenAICompletionClient:
    """Chat completions over HTTP (OpenAI or any compatible gateway)."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        model: str,
        base_url: str = "https://api.openai.com/v1",
        temperature: float = 0.1,
    ):
        self.client = client
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.temperature = temperature

    async def complete(self, system: str, user: str, json_mode: bool = False) -> str:
        payload: Dict[str, Any] = {
            "model": self.model,
            "temperature": self.temperature,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        try:
            response = await self.client.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=None,
            )
            response.raise_for_status()
            body = response.json()
            return body["choices"][0]["message"]["content"] or ""
        except httpx.HTTPStatusError as exc:
            raise CompletionError(
                f"Completion provider answered HTTP {exc.response.status_code}",
                detail=exc.response.text[:500],
            ) from exc
        except httpx.HTTPError as exc:
            raise CompletionError("Completion provider unreachable", detail=str(exc)) from exc
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise CompletionError("Completion provider returned an unexpected envelope", detail=str(exc)) from exc


class GeminiCompletionClient:
    """Google Gemini through the google-genai async client."""

    def __init__(self, api_key: str, model: str, temperature: float = 0.1):
        self.model = model
        self.temperature = temperature
        try:
            from google import genai
            self._client = genai.Client(api_key=api_key)
        except Exception as exc:
            raise CompletionError("google-genai client could not be created", detail=str(exc)) from exc

    async def complete(self, system: str, user: str, json_mode: bool = False) -> str:
        config: Dict[str, Any] = {
            "system_instruction": system,
            "temperature": self.temperature,
        }
        if json_mode:
            config["response_mime_type"] = "application/json"
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=user,
                config=config,
            )
        except Exception as exc:
            raise CompletionError("Gemini completion failed", detail=str(exc)) from exc
        return response.text or ""


_PRICE_BELOW = re.compile(r"precio menor a (\d+)")
_ROOMS = re.compile(r"(\d+)\s*habitaciones")
_BATHS = re.compile(r"(\d+)\s*baños")


class MockCompletionClient:
    """Offline provider that answers with a filter object built from keyword rules."""

    model = "mock"

    async def complete(self, system: str, user: str, json_mode: bool = False) -> str:
        text = (user or "").lower()
        if not json_mode:
            return "No tengo ese dato en el catálogo."

        result: Dict[str, Any] = {"limit": 10, "fields": DEFAULT_FILTER_FIELDS}
        if "vendido" in text:
            result["estado"] = "vendido"
        if "reservado" in text:
            result["estado"] = "reservado"
        if "casa" in text:
            result["tipo"] = "Casa"
        if "lote" in text:
            result["tipo"] = "Lote"

        match = _ROOMS.search(text)
        if match:
            result["habitaciones_min"] = int(match.group(1))
        match = _BATHS.search(text)
        if match:
            result["baños_min"] = int(match.group(1))
        match = _PRICE_BELOW.search(text)
        if match:
            result["precio_max"] = float(match.group(1))
        return json.dumps(result, ensure_ascii=False)


def build_completion_client(
    settings: Settings,
    http_client: Optional[httpx.AsyncClient] = None,
) -> CompletionClient:
    """Pick the configured provider; fall back to the mock when it has no credentials."""
    provider = settings.llm_provider
    if provider == "openai" and settings.llm_api_key and http_client is not None:
        return OpenAICompletionClient(
            http_client,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            base_url=settings.openai_base_url,
        )
    if provider == "gemini" and settings.google_genai_api_key:
        return GeminiCompletionClient(
            api_key=settings.google_genai_api_key,
            model=settings.google_genai_model,
        )
    if provider != "mock":
        logger.warning("LLM provider '%s' has no API key configured, using mock completions", provider)
    return MockCompletionClient()
