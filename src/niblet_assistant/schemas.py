from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, Field


class RunStatus(str, Enum):
    """Lifecycle of a single assistant turn as tracked locally."""

    STARTING = "starting"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        RunStatus.COMPLETED,
        RunStatus.FAILED,
        RunStatus.CANCELLED,
        RunStatus.EXPIRED,
        RunStatus.TIMED_OUT,
    }
)


class AssistantMessage(BaseModel):
    """A message read back from a conversation thread."""

    id: str
    content: str
    created_at: datetime = Field(alias="createdAt")
    role: str | None = None

    model_config = {"populate_by_name": True}


class ToolCall(BaseModel):
    """A function call requested by the assistant mid-run."""

    id: str
    function_name: str
    arguments: dict[str, Any] = Field(default_factory=dict)
    arguments_valid: bool = True


class ToolOutput(BaseModel):
    """Serialized result of a tool call, submitted back to the run."""

    tool_call_id: str
    output: str


class RunResult(BaseModel):
    """Outcome of one run, including the messages it produced."""

    status: RunStatus
    messages: list[AssistantMessage] = Field(default_factory=list)
    run_id: str | None = None
    error: str | None = None
    transitions: list[RunStatus] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == RunStatus.COMPLETED


class HealthResponse(BaseModel):
    status: str = "ok"


class InitializeChatRequest(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    personality: str = "best-friend"

    model_config = {"populate_by_name": True}


class WelcomeMessage(BaseModel):
    id: str
    content: str
    timestamp: datetime


class InitializeChatResponse(BaseModel):
    thread_id: str = Field(alias="threadId")
    assistant_id: str = Field(alias="assistantId")
    personality: str
    welcome_message: WelcomeMessage = Field(alias="welcomeMessage")

    model_config = {"populate_by_name": True}


class SendMessageRequest(BaseModel):
    user_id: str = Field(..., alias="userId", min_length=1)
    assistant_id: str = Field(..., alias="assistantId", min_length=1)
    personality: str = "best-friend"
    message: str = ""
    image_url: str | None = Field(default=None, alias="imageUrl")

    model_config = {"populate_by_name": True}


class SendMessageResponse(BaseModel):
    status: Literal[
        "completed", "failed", "cancelled", "expired", "timed_out", "not_sent"
    ]
    messages: list[AssistantMessage]
    fallback: str | None = None


class TranscriptionResponse(BaseModel):
    text: str
