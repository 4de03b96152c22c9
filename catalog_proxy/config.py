"""Application settings loaded from environment variables."""
from typing import List
from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Caminho absoluto para o ficheiro .env
ENV_FILE = Path(__file__).parent.parent / ".env"

LLM_PROVIDERS = ("mock", "openai", "gemini")


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Miraiz Catalog Proxy"
    app_version: str = "1.0.0"
    debug_enable: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Upstream catalog
    catalog_url: str = "https://test.controldepropiedades.com/api/propiedades/miraiz"
    catalog_api_key: str = ""
    catalog_timeout_seconds: float = 5.0
    cache_seconds: int = 90

    # Completion provider
    llm_provider: str = "mock"
    llm_api_key: str = ""
    llm_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    google_genai_api_key: str = ""
    google_genai_model: str = "gemini-2.5-flash"

    # Query defaults
    default_limit: int = 10
    default_estado: str = "disponible"
    lite_default_limit: int = 20
    lite_default_fields: str = "id,propiedad,precio,imagenes.url"

    nlq_rate_limit_requests: int = 30   # pedidos permitidos por janela
    nlq_rate_limit_window: int = 60     # janela em segundos

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            import json
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("llm_provider")
    @classmethod
    def validate_llm_provider(cls, v: str) -> str:
        v = (v or "mock").strip().lower()
        if v not in LLM_PROVIDERS:
            raise ValueError(f"llm_provider must be one of {', '.join(LLM_PROVIDERS)}")
        return v

    @field_validator("cache_seconds")
    @classmethod
    def validate_cache_seconds(cls, v: int) -> int:
        if v < 1:
            raise ValueError("cache_seconds must be >= 1")
        return v


settings = Settings()
