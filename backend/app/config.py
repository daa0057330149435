from dataclasses import dataclass
from functools import lru_cache
import json
from typing import Annotated, Any, List, Optional, Tuple

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .orchestration.providers import DEFAULT_PROVIDER, get_provider
from .safety.guard import DEFAULT_DENYLIST, Denylist, build_denylist

DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful, friendly, and safe AI assistant.\n"
    "Your goal is to provide accurate and constructive information.\n"
    "Always be respectful and avoid generating harmful content."
)


class Settings(BaseSettings):
    # App settings
    ENVIRONMENT: str = "development"
    PROJECT_NAME: str = "Moderated Chat"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    # Allow any localhost/127.0.0.1 port (useful for dev tools/proxies)
    CORS_ORIGIN_REGEX: str = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = None

    # Upstream provider; explicit LLM_* values override the preset
    LLM_PROVIDER: str = DEFAULT_PROVIDER
    LLM_API_KEY: Optional[str] = None
    LLM_API_URL: Optional[str] = None
    MODEL_NAME: Optional[str] = None
    HTTP_REFERER: Optional[str] = None
    APP_TITLE: Optional[str] = None
    LLM_TIMEOUT_S: float = Field(30.0, gt=0)

    # Per-provider keys, used when LLM_API_KEY is unset
    OPENROUTER_API_KEY: str = ""
    GROQ_API_KEY: str = ""
    DEEPSEEK_API_KEY: str = ""
    OPENAI_API_KEY: str = ""

    # Generation
    SYSTEM_PROMPT: str = DEFAULT_SYSTEM_PROMPT
    MAX_TOKENS: int = Field(500, gt=0)
    TEMPERATURE: Optional[float] = Field(0.7, ge=0.0, le=1.0)

    # Moderation
    DENYLIST: Annotated[List[str], NoDecode] = list(DEFAULT_DENYLIST)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
        frozen=True,
    )

    @field_validator("LLM_PROVIDER")
    @classmethod
    def check_provider(cls, v: str) -> str:
        return get_provider(v).name

    @field_validator("TEMPERATURE", mode="before")
    @classmethod
    def blank_temperature(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("DENYLIST", mode="before")
    @classmethod
    def assemble_denylist(cls, v: Any) -> Any:
        """Accept a JSON list or a comma-separated string."""
        if isinstance(v, str):
            if v.strip().startswith("["):
                return json.loads(v)
            return [i.strip() for i in v.split(",")]
        return v

    def resolve_api_key(self) -> Optional[str]:
        explicit = (self.LLM_API_KEY or "").strip()
        if explicit:
            return explicit
        preset = get_provider(self.LLM_PROVIDER)
        return (getattr(self, preset.key_env, "") or "").strip() or None


@dataclass(frozen=True)
class ChatConfig:
    """Immutable per-process configuration handed to the pipeline."""

    api_url: str
    model: str
    api_key: Optional[str] = None
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_tokens: int = 500
    temperature: Optional[float] = 0.7
    timeout_s: float = 30.0
    denylist: Denylist = DEFAULT_DENYLIST
    extra_headers: Tuple[Tuple[str, str], ...] = ()
    provider: str = DEFAULT_PROVIDER

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatConfig":
        preset = get_provider(settings.LLM_PROVIDER)
        headers = dict(preset.extra_headers)
        if settings.HTTP_REFERER:
            headers["HTTP-Referer"] = settings.HTTP_REFERER
        if settings.APP_TITLE:
            headers["X-Title"] = settings.APP_TITLE
        return cls(
            api_url=settings.LLM_API_URL or preset.api_url,
            model=settings.MODEL_NAME or preset.model,
            api_key=settings.resolve_api_key(),
            system_prompt=settings.SYSTEM_PROMPT,
            max_tokens=settings.MAX_TOKENS,
            temperature=settings.TEMPERATURE,
            timeout_s=settings.LLM_TIMEOUT_S,
            denylist=build_denylist(settings.DENYLIST),
            extra_headers=tuple(headers.items()),
            provider=preset.name,
        )


def mask(k: Optional[str]) -> str:
    if not k:
        return "<empty>"
    if len(k) <= 12:
        return f"len={len(k)} ***"
    return f"len={len(k)} {k[:4]}...{k[-4:]}"


@lru_cache()
def get_settings() -> Settings:
    settings = Settings()

    # Only enforce the API key in production
    if settings.ENVIRONMENT == "production" and not settings.resolve_api_key():
        raise ValueError("An LLM API key is required in production environment")

    return settings
