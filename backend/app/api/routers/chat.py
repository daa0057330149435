from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...config import ChatConfig, get_settings
from ...orchestration.graph import Orchestrator, TurnOutcome
from ...orchestration.llm import ErrorKind

router = APIRouter(tags=["chat"])


# Models


class ChatRequest(BaseModel):
    message: str


class ChatResponse(BaseModel):
    outcome: str
    text: Optional[str] = None
    warning: Optional[str] = None
    error: Optional[str] = None
    message: Optional[str] = None


@lru_cache()
def get_orchestrator() -> Orchestrator:
    return Orchestrator(ChatConfig.from_settings(get_settings()))


def _status_for(outcome: TurnOutcome, kind: Optional[ErrorKind]) -> int:
    if outcome is TurnOutcome.DELIVERED:
        return 200
    if outcome is TurnOutcome.BLOCKED or kind is ErrorKind.EMPTY_INPUT:
        return 400
    return 500


# Sync handler: FastAPI runs it in the threadpool while the upstream call blocks
@router.post("/chat", response_model=ChatResponse)
def chat(chat_request: ChatRequest, orchestrator: Orchestrator = Depends(get_orchestrator)):
    """
    Moderate the message, forward it upstream and return the moderated reply.
    """
    result = orchestrator.run(chat_request.message)
    body = ChatResponse(**result.to_dict())
    return JSONResponse(
        status_code=_status_for(result.outcome, result.error_kind),
        content=body.model_dump(exclude_none=True),
    )
