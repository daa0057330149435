import pytest
from pydantic import ValidationError

from backend.app.config import ChatConfig, Settings, get_settings, mask
from backend.app.orchestration.providers import PROVIDERS, get_provider
from backend.app.safety.guard import DEFAULT_DENYLIST


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


def test_defaults(clean_env):
    s = _settings()
    cfg = ChatConfig.from_settings(s)
    assert cfg.provider == "openrouter"
    assert cfg.api_url == "https://openrouter.ai/api/v1/chat/completions"
    assert cfg.model == "deepseek/deepseek-chat"
    assert cfg.api_key is None
    assert cfg.configured is False
    assert cfg.max_tokens == 500
    assert cfg.temperature == 0.7
    assert cfg.denylist == DEFAULT_DENYLIST
    assert dict(cfg.extra_headers)["X-Title"] == "AI Chat Moderation App"


def test_provider_key_fallback(clean_env):
    clean_env.setenv("GROQ_API_KEY", "gsk-from-env")
    cfg = ChatConfig.from_settings(_settings(LLM_PROVIDER="groq"))
    assert cfg.api_key == "gsk-from-env"
    assert cfg.api_url == "https://api.groq.com/openai/v1/chat/completions"
    assert cfg.model == "llama-3.1-8b-instant"
    assert cfg.extra_headers == ()


def test_explicit_values_override_preset(clean_env):
    clean_env.setenv("OPENROUTER_API_KEY", "preset-key")
    s = _settings(
        LLM_API_KEY="explicit-key",
        LLM_API_URL="http://localhost:9999/v1/chat/completions",
        MODEL_NAME="local-model",
        APP_TITLE="My Proxy",
    )
    cfg = ChatConfig.from_settings(s)
    assert cfg.api_key == "explicit-key"
    assert cfg.api_url == "http://localhost:9999/v1/chat/completions"
    assert cfg.model == "local-model"
    assert dict(cfg.extra_headers)["X-Title"] == "My Proxy"


def test_denylist_from_env_comma_separated(clean_env):
    clean_env.setenv("DENYLIST", "Kill, HACK ,,bomb")
    cfg = ChatConfig.from_settings(_settings())
    assert cfg.denylist == ("kill", "hack", "bomb")


def test_denylist_from_env_json(clean_env):
    clean_env.setenv("DENYLIST", '["abuse", "Violence"]')
    cfg = ChatConfig.from_settings(_settings())
    assert cfg.denylist == ("abuse", "violence")


def test_blank_temperature_disables_it(clean_env):
    clean_env.setenv("TEMPERATURE", "")
    assert _settings().TEMPERATURE is None


def test_temperature_range_is_validated(clean_env):
    with pytest.raises(ValidationError):
        _settings(TEMPERATURE=1.5)


def test_unknown_provider_rejected(clean_env):
    with pytest.raises(ValidationError):
        _settings(LLM_PROVIDER="nope")


def test_settings_are_immutable(clean_env):
    s = _settings()
    with pytest.raises(ValidationError):
        s.MAX_TOKENS = 10


def test_chat_config_is_frozen(chat_config):
    import dataclasses

    with pytest.raises(dataclasses.FrozenInstanceError):
        chat_config.api_key = "other"


def test_production_requires_key(clean_env):
    clean_env.setenv("ENVIRONMENT", "production")
    get_settings.cache_clear()
    try:
        with pytest.raises(ValueError):
            get_settings()
    finally:
        get_settings.cache_clear()


def test_get_provider_is_case_insensitive():
    assert get_provider(" GROQ ").name == "groq"
    assert set(PROVIDERS) == {"openrouter", "groq", "deepseek", "openai"}


def test_mask_hides_secret():
    assert mask(None) == "<empty>"
    assert "short" not in mask("short")
    masked = mask("sk-or-v1-abcdefghijklmnop")
    assert "abcdefghijkl" not in masked
