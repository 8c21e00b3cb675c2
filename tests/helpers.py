"""Shared test helpers (fake clock and provider payload builders)."""

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Callable, Optional
from unittest.mock import AsyncMock, MagicMock


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly.

    ``on_sleep`` runs after each sleep with the number of sleeps so far, which
    lets a test flip state "while" the code under test is waiting. With
    ``yield_control`` set, each sleep also hands the loop to other tasks so
    concurrent callers interleave at their wait points.
    """

    def __init__(self, start: float = 1000.0, yield_control: bool = False):
        self.now = start
        self.yield_control = yield_control
        self.sleeps: list[float] = []
        self.on_sleep: Optional[Callable[[int], None]] = None

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        if self.on_sleep is not None:
            self.on_sleep(len(self.sleeps))
        if self.yield_control:
            await asyncio.sleep(0)


class ProviderError(Exception):
    """Stand-in for an OpenAI APIStatusError."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


def make_message(
    message_id: str,
    content: str,
    role: str = "assistant",
    created_at: int = 1_700_000_000,
) -> SimpleNamespace:
    blocks = [SimpleNamespace(type="text", text=SimpleNamespace(value=content))] if content else []
    return SimpleNamespace(id=message_id, content=blocks, role=role, created_at=created_at)


def make_page(*messages: SimpleNamespace) -> SimpleNamespace:
    return SimpleNamespace(data=list(messages))


def make_tool_call(call_id: str, name: str, arguments: Any) -> SimpleNamespace:
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=arguments),
    )


def make_run(
    status: str,
    run_id: str = "run_abc123",
    tool_calls: Optional[list] = None,
    error: Optional[str] = None,
) -> SimpleNamespace:
    required_action = None
    if tool_calls is not None:
        required_action = SimpleNamespace(
            type="submit_tool_outputs",
            submit_tool_outputs=SimpleNamespace(tool_calls=tool_calls),
        )
    last_error = SimpleNamespace(code="server_error", message=error) if error else None
    return SimpleNamespace(
        id=run_id,
        status=status,
        required_action=required_action,
        last_error=last_error,
    )


def make_openai_client() -> MagicMock:
    """A MagicMock shaped like AsyncOpenAI; every endpoint used is an AsyncMock."""
    client = MagicMock()

    client.beta.threads.create = AsyncMock(return_value=SimpleNamespace(id="thread_123"))
    client.beta.assistants.create = AsyncMock(return_value=SimpleNamespace(id="asst_123"))
    client.beta.assistants.retrieve = AsyncMock(return_value=SimpleNamespace(id="asst_123"))

    client.beta.threads.messages.create = AsyncMock(return_value=SimpleNamespace(id="msg_user"))
    client.beta.threads.messages.list = AsyncMock(
        return_value=make_page(make_message("msg_hello", "Hello!", created_at=1_700_000_000))
    )

    client.beta.threads.runs.create = AsyncMock(return_value=make_run("queued"))
    client.beta.threads.runs.retrieve = AsyncMock(return_value=make_run("completed"))
    client.beta.threads.runs.submit_tool_outputs = AsyncMock(return_value=make_run("queued"))

    client.audio.transcriptions.create = AsyncMock(
        return_value=SimpleNamespace(text="two eggs and toast")
    )
    return client
