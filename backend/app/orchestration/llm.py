"""Chat-completion client.

Sends one OpenAI-compatible ``/chat/completions`` request per call through an
injectable transport and turns the outcome into either a
:class:`CompletionSuccess` or a classified :class:`CompletionFailure`.
Nothing is retried.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import http.client
import json
import logging
import socket
import time
from typing import Dict, Optional, Protocol, Union
import urllib.error
import urllib.request

from ..config import ChatConfig

logger = logging.getLogger(__name__)

# Upstream bodies can be large HTML error pages
BODY_EXCERPT_CHARS = 500


class ErrorKind(str, Enum):
    EMPTY_INPUT = "empty_input"
    POLICY_VIOLATION = "policy_violation"
    CONFIGURATION = "configuration"
    TRANSPORT_OR_SERVER = "transport_or_server"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True)
class CompletionRequest:
    system_prompt: str
    user_prompt: str
    max_output_tokens: int
    temperature: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.user_prompt or not self.user_prompt.strip():
            raise ValueError("user_prompt must be a non-empty string")
        if self.max_output_tokens <= 0:
            raise ValueError(f"max_output_tokens must be positive, got {self.max_output_tokens}")
        if self.temperature is not None and not (0.0 <= self.temperature <= 1.0):
            raise ValueError(f"temperature must be within [0, 1], got {self.temperature}")

    def to_payload(self, model: str) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "model": model,
            "messages": [
                {"role": "system", "content": self.system_prompt},
                {"role": "user", "content": self.user_prompt},
            ],
            "max_tokens": self.max_output_tokens,
        }
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        return payload


@dataclass(frozen=True)
class CompletionSuccess:
    text: str

    ok = True


@dataclass(frozen=True)
class CompletionFailure:
    kind: ErrorKind
    detail: str
    status_code: Optional[int] = None

    ok = False


CompletionResult = Union[CompletionSuccess, CompletionFailure]


# -- transport ---------------------------------------------------------------


@dataclass(frozen=True)
class TransportResponse:
    status: int
    body: str


class TransportError(Exception):
    """Network-level or HTTP protocol failure before a full response arrived."""


class Transport(Protocol):
    def send(
        self, url: str, headers: Dict[str, str], body: bytes, timeout: float
    ) -> TransportResponse:
        ...


class UrllibTransport:
    """Blocking POST via ``urllib.request``.

    HTTP error statuses are returned as responses, not raised.
    """

    def send(
        self, url: str, headers: Dict[str, str], body: bytes, timeout: float
    ) -> TransportResponse:
        req = urllib.request.Request(url, data=body, headers=headers, method="POST")
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                return TransportResponse(resp.status, resp.read().decode("utf-8", errors="replace"))
        except urllib.error.HTTPError as he:
            try:
                err_body = he.read().decode("utf-8", errors="replace")
            except (OSError, http.client.HTTPException):
                err_body = ""
            return TransportResponse(he.code, err_body)
        except urllib.error.URLError as ue:
            raise TransportError(str(ue.reason)) from ue
        except (socket.timeout, TimeoutError) as te:
            raise TransportError(f"timed out after {timeout}s") from te
        except OSError as oe:
            raise TransportError(str(oe)) from oe
        except http.client.HTTPException as he:
            # IncompleteRead, BadStatusLine and friends are not OSErrors
            raise TransportError(f"{type(he).__name__}: {he}") from he


# -- client ------------------------------------------------------------------


def _extract_content(data: object) -> str:
    """Pull ``choices[0].message.content`` out of a decoded body, or ``""``."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    choice0 = choices[0]
    if not isinstance(choice0, dict):
        return ""
    msg_obj = choice0.get("message")
    if not isinstance(msg_obj, dict):
        return ""
    content = msg_obj.get("content")
    return content if isinstance(content, str) else ""


class CompletionClient:
    """Turns a user prompt into model text via exactly one outbound request."""

    def __init__(self, config: ChatConfig, transport: Optional[Transport] = None) -> None:
        self.config = config
        self.transport: Transport = transport or UrllibTransport()

    def build_request(self, user_prompt: str) -> CompletionRequest:
        return CompletionRequest(
            system_prompt=self.config.system_prompt,
            user_prompt=user_prompt,
            max_output_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.api_key}",
            "Content-Type": "application/json",
        }
        headers.update(dict(self.config.extra_headers))
        return headers

    def _failure(self, kind: ErrorKind, detail: str, status_code: Optional[int] = None) -> CompletionFailure:
        key = self.config.api_key
        if key and key in detail:
            detail = detail.replace(key, "***")
        return CompletionFailure(kind=kind, detail=detail, status_code=status_code)

    def complete(self, user_prompt: str) -> CompletionResult:
        if not self.config.configured:
            logger.error("LLM API key is not set (provider=%s)", self.config.provider)
            return self._failure(
                ErrorKind.CONFIGURATION,
                f"LLM not configured. Set LLM_API_KEY (provider={self.config.provider}).",
            )

        request = self.build_request(user_prompt)
        body = json.dumps(request.to_payload(self.config.model)).encode("utf-8")

        start = time.monotonic()
        try:
            resp = self.transport.send(self.config.api_url, self._headers(), body, self.config.timeout_s)
        except TransportError as e:
            logger.warning("Upstream request to %s failed: %s", self.config.api_url, e)
            return self._failure(ErrorKind.TRANSPORT_OR_SERVER, f"Request to upstream API failed: {e}")
        elapsed_ms = (time.monotonic() - start) * 1000

        if not 200 <= resp.status < 300:
            excerpt = (resp.body or "")[:BODY_EXCERPT_CHARS]
            logger.warning("Upstream API error status=%s (%.0fms)", resp.status, elapsed_ms)
            return self._failure(
                ErrorKind.TRANSPORT_OR_SERVER,
                f"Upstream API error ({resp.status}): {excerpt}",
                status_code=resp.status,
            )

        try:
            data = json.loads(resp.body)
        except ValueError as e:
            logger.warning("Upstream returned non-JSON body: %s", e)
            return self._failure(
                ErrorKind.MALFORMED_RESPONSE,
                f"Upstream response was not valid JSON: {e}",
                status_code=resp.status,
            )

        text = _extract_content(data).strip()
        if not text:
            logger.warning(
                "Upstream returned no message content. Raw response (truncated): %s",
                (resp.body or "")[:BODY_EXCERPT_CHARS],
            )
            return self._failure(
                ErrorKind.MALFORMED_RESPONSE,
                "No response content from upstream API",
                status_code=resp.status,
            )

        logger.info(
            "Upstream completion ok model=%s len=%d (%.0fms)", self.config.model, len(text), elapsed_ms
        )
        return CompletionSuccess(text=text)
