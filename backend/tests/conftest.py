import json
import sys
from pathlib import Path
from typing import Dict, List, Optional

# Ensure repository root is on sys.path so 'import backend' works
ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Force pytest-anyio to use asyncio backend (avoid requiring 'trio')
import pytest

from backend.app.config import ChatConfig
from backend.app.orchestration.llm import TransportResponse

KEY_VARS = (
    "LLM_API_KEY",
    "OPENROUTER_API_KEY",
    "GROQ_API_KEY",
    "DEEPSEEK_API_KEY",
    "OPENAI_API_KEY",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


class FakeTransport:
    """Records every send() and replays scripted responses or errors."""

    def __init__(self, status: int = 200, body: str = "", error: Optional[Exception] = None):
        self.status = status
        self.body = body
        self.error = error
        self.calls: List[Dict] = []

    def send(self, url, headers, body, timeout):
        self.calls.append({"url": url, "headers": dict(headers), "body": body, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return TransportResponse(self.status, self.body)


def completion_body(content) -> str:
    return json.dumps({"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.fixture
def make_transport():
    def _make(status: int = 200, body: Optional[str] = None, content: Optional[str] = None,
              error: Optional[Exception] = None) -> FakeTransport:
        if body is None:
            body = completion_body(content) if content is not None else ""
        return FakeTransport(status=status, body=body, error=error)

    return _make


@pytest.fixture
def chat_config():
    return ChatConfig(
        api_url="https://llm.test/v1/chat/completions",
        model="test-model",
        api_key="sk-test-secret-key-0123456789",
        max_tokens=500,
        temperature=0.7,
        timeout_s=5.0,
    )


@pytest.fixture
def clean_env(monkeypatch):
    for var in KEY_VARS:
        monkeypatch.delenv(var, raising=False)
    for var in ("LLM_PROVIDER", "LLM_API_URL", "MODEL_NAME", "DENYLIST", "TEMPERATURE", "ENVIRONMENT"):
        monkeypatch.delenv(var, raising=False)
    yield monkeypatch
