from dataclasses import dataclass, field
from typing import Dict, Tuple


@dataclass(frozen=True)
class ProviderPreset:
    name: str
    api_url: str
    model: str
    key_env: str
    # Optional attribution headers sent with every request
    extra_headers: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


PROVIDERS: Dict[str, ProviderPreset] = {
    "openrouter": ProviderPreset(
        name="openrouter",
        api_url="https://openrouter.ai/api/v1/chat/completions",
        model="deepseek/deepseek-chat",
        key_env="OPENROUTER_API_KEY",
        extra_headers=(
            ("HTTP-Referer", "http://localhost:3000"),
            ("X-Title", "AI Chat Moderation App"),
        ),
    ),
    "groq": ProviderPreset(
        name="groq",
        api_url="https://api.groq.com/openai/v1/chat/completions",
        model="llama-3.1-8b-instant",
        key_env="GROQ_API_KEY",
    ),
    "deepseek": ProviderPreset(
        name="deepseek",
        api_url="https://api.deepseek.com/chat/completions",
        model="deepseek-chat",
        key_env="DEEPSEEK_API_KEY",
    ),
    "openai": ProviderPreset(
        name="openai",
        api_url="https://api.openai.com/v1/chat/completions",
        model="gpt-4o-mini",
        key_env="OPENAI_API_KEY",
    ),
}

DEFAULT_PROVIDER = "openrouter"


def get_provider(name: str) -> ProviderPreset:
    key = (name or "").strip().lower()
    try:
        return PROVIDERS[key]
    except KeyError:
        raise ValueError(
            f"unknown LLM provider {name!r}; expected one of {sorted(PROVIDERS)}"
        ) from None
