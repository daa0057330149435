from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, Dict, Optional

from ..config import ChatConfig
from ..safety.guard import post_moderate, pre_moderate
from .llm import CompletionClient, CompletionFailure, ErrorKind, Transport

logger = logging.getLogger(__name__)

POLICY_VIOLATION_MESSAGE = (
    "Your input violated the moderation policy. "
    "Please rephrase your question without harmful content."
)
EMPTY_INPUT_MESSAGE = "Please provide a valid message"
REDACTION_WARNING = "Response contained inappropriate content (redacted)"


class TurnOutcome(str, Enum):
    BLOCKED = "blocked"
    DELIVERED = "delivered"
    FAILED = "failed"


@dataclass(frozen=True)
class ChatTurnResult:
    outcome: TurnOutcome
    text: Optional[str] = None
    warning: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    detail: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.outcome is TurnOutcome.DELIVERED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome.value,
            "text": self.text,
            "warning": self.warning,
            "error": self.error_kind.value if self.error_kind else None,
            "message": self.detail,
        }


class Orchestrator:
    """Runs one chat turn: input guard, completion call, output redaction.

    Every turn is independent; the only shared state is the frozen config.
    """

    def __init__(
        self,
        config: ChatConfig,
        client: Optional[CompletionClient] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.config = config
        self.client = client or CompletionClient(config, transport=transport)

    def run(self, message: str) -> ChatTurnResult:
        # Received
        if not isinstance(message, str) or not message.strip():
            logger.info("turn rejected: empty input")
            return ChatTurnResult(
                outcome=TurnOutcome.FAILED,
                error_kind=ErrorKind.EMPTY_INPUT,
                detail=EMPTY_INPUT_MESSAGE,
            )

        # InputChecked
        verdict = pre_moderate(message, self.config.denylist)
        if verdict.flagged:
            # Never echo the offending text back
            logger.info("turn blocked by input filter (len=%d)", len(message))
            return ChatTurnResult(
                outcome=TurnOutcome.BLOCKED,
                error_kind=ErrorKind.POLICY_VIOLATION,
                detail=POLICY_VIOLATION_MESSAGE,
            )
        logger.debug("input passed filter, calling upstream")

        # Calling
        result = self.client.complete(message)
        if isinstance(result, CompletionFailure):
            logger.warning("turn failed: %s", result.kind.value)
            return ChatTurnResult(
                outcome=TurnOutcome.FAILED,
                error_kind=result.kind,
                detail=result.detail,
            )

        # OutputChecked
        moderated = post_moderate(result.text, self.config.denylist)
        if moderated.flagged:
            logger.info("model output redacted (len=%d)", len(moderated.text))
        logger.info("turn delivered")
        return ChatTurnResult(
            outcome=TurnOutcome.DELIVERED,
            text=moderated.text,
            warning=REDACTION_WARNING if moderated.flagged else None,
        )
