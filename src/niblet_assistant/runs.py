"""Run execution: start a run, poll it to a terminal state, service tool calls.

Polling backs off geometrically while the provider is thinking and resets
after every tool-output submission. Rate limiting (429) waits longer but is
not counted as a hard error; anything else draws from a small error budget.
A run that outlives its wall-clock budget ends locally as ``timed_out`` even
though the provider may keep working on it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from openai import AsyncOpenAI

from .config import Settings, get_settings
from .personalities import DEFAULT_PERSONALITY, get_personality
from .retry import is_rate_limited, retry_with_backoff
from .run_state import RunStateRegistry
from .schemas import AssistantMessage, RunResult, RunStatus
from .threads import SYNTHETIC_INIT_MESSAGE, is_synthetic, to_assistant_message
from .tools import ToolDispatchBridge, ToolDispatcher, parse_tool_call

logger = logging.getLogger(__name__)

T = TypeVar("T")

_PROVIDER_STATUSES = {
    "queued": RunStatus.IN_PROGRESS,
    "in_progress": RunStatus.IN_PROGRESS,
    "cancelling": RunStatus.IN_PROGRESS,
    "requires_action": RunStatus.REQUIRES_ACTION,
    "completed": RunStatus.COMPLETED,
    "failed": RunStatus.FAILED,
    "incomplete": RunStatus.FAILED,
    "cancelled": RunStatus.CANCELLED,
    "expired": RunStatus.EXPIRED,
}


def map_provider_status(status: str) -> RunStatus:
    """Map an Assistants API run status onto the local run lifecycle."""
    mapped = _PROVIDER_STATUSES.get(status)
    if mapped is None:
        logger.warning("[RUNS] Unknown provider run status %r, treating as in progress", status)
        return RunStatus.IN_PROGRESS
    return mapped


def _run_error(run: Any) -> Optional[str]:
    last_error = getattr(run, "last_error", None)
    if last_error is not None and getattr(last_error, "message", None):
        return last_error.message
    return None


def _pending_tool_calls(run: Any) -> List[Any]:
    required_action = getattr(run, "required_action", None)
    if required_action is None or required_action.submit_tool_outputs is None:
        return []
    return list(required_action.submit_tool_outputs.tool_calls or [])


class RunEngine:
    """Drives one assistant run per call and reports how it ended."""

    def __init__(
        self,
        client: AsyncOpenAI,
        registry: RunStateRegistry,
        *,
        bridge: Optional[ToolDispatchBridge] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._registry = registry
        self._bridge = bridge or ToolDispatchBridge()
        self._settings = settings or get_settings()
        self._clock = clock
        self._sleep = sleep

    async def _retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        return await retry_with_backoff(
            fn,
            attempts=self._settings.retry_attempts,
            base_delay=self._settings.retry_base_delay,
            factor=self._settings.retry_backoff_factor,
            sleep=self._sleep,
        )

    async def run(
        self,
        thread_id: str,
        assistant_id: str,
        personality: str = DEFAULT_PERSONALITY,
        tool_dispatcher: Optional[ToolDispatcher] = None,
        user_id: Optional[str] = None,
        expects_image: bool = False,
    ) -> List[AssistantMessage]:
        """Run the assistant and return its messages, or [] if the run did not complete."""
        result = await self.run_with_outcome(
            thread_id,
            assistant_id,
            personality,
            tool_dispatcher,
            user_id=user_id,
            expects_image=expects_image,
        )
        return result.messages

    async def run_with_outcome(
        self,
        thread_id: str,
        assistant_id: str,
        personality: str = DEFAULT_PERSONALITY,
        tool_dispatcher: Optional[ToolDispatcher] = None,
        user_id: Optional[str] = None,
        expects_image: bool = False,
    ) -> RunResult:
        transitions = [RunStatus.STARTING]
        run_id: Optional[str] = None
        registered = False

        try:
            synthetic_id = await self._ensure_thread_started(thread_id)
            await self._wait_for_idle_thread(thread_id)

            temperature = get_personality(personality).temperature
            logger.info("[RUNS] Running assistant %s on thread %s", assistant_id, thread_id)
            run = await self._retry(
                lambda: self._client.beta.threads.runs.create(
                    thread_id,
                    assistant_id=assistant_id,
                    temperature=temperature,
                )
            )
            run_id = run.id
            self._registry.set_run_active(thread_id, run_id)
            registered = True
            _advance(transitions, RunStatus.IN_PROGRESS)

            timeout = (
                self._settings.image_run_timeout if expects_image else self._settings.run_timeout
            )
            status, error = await self._poll_until_terminal(
                thread_id,
                run_id,
                tool_dispatcher,
                user_id,
                deadline=self._clock() + timeout,
                transitions=transitions,
            )

            if status != RunStatus.COMPLETED:
                logger.error("[RUNS] Run %s ended with status: %s", run_id, status.value)
                return RunResult(status=status, run_id=run_id, error=error, transitions=transitions)

            messages = await self._completed_messages(thread_id, synthetic_id)
            logger.info("[RUNS] Run %s completed with %d assistant messages", run_id, len(messages))
            return RunResult(
                status=status, messages=messages, run_id=run_id, transitions=transitions
            )
        except Exception as e:
            logger.exception("[RUNS] Error running assistant on thread %s", thread_id)
            _advance(transitions, RunStatus.FAILED)
            return RunResult(
                status=RunStatus.FAILED, run_id=run_id, error=str(e), transitions=transitions
            )
        finally:
            if registered:
                self._registry.set_run_inactive(thread_id)

    async def _ensure_thread_started(self, thread_id: str) -> Optional[str]:
        """Post the synthetic greeting prompt on an empty thread. Returns its id, if posted."""
        page = await self._retry(
            lambda: self._client.beta.threads.messages.list(thread_id, limit=1)
        )
        if page.data:
            return None

        message = await self._retry(
            lambda: self._client.beta.threads.messages.create(
                thread_id, role="user", content=SYNTHETIC_INIT_MESSAGE
            )
        )
        logger.info("[RUNS] Thread %s was empty, posted init message %s", thread_id, message.id)
        return message.id

    async def _wait_for_idle_thread(self, thread_id: str) -> None:
        if not self._registry.has_active_run(thread_id):
            return
        finished = await self._registry.wait_for_run_completion(
            thread_id, timeout=self._settings.message_wait_timeout
        )
        if not finished:
            logger.warning(
                "[RUNS] Previous run on thread %s still marked active, forcing inactive", thread_id
            )
            self._registry.set_run_inactive(thread_id)

    async def _poll_until_terminal(
        self,
        thread_id: str,
        run_id: str,
        tool_dispatcher: Optional[ToolDispatcher],
        user_id: Optional[str],
        *,
        deadline: float,
        transitions: List[RunStatus],
    ) -> Tuple[RunStatus, Optional[str]]:
        settings = self._settings
        delay = settings.poll_base_delay
        polls = 0
        errors = 0

        while polls < settings.poll_max_retries:
            remaining = deadline - self._clock()
            if remaining <= 0:
                logger.warning("[RUNS] Run %s exceeded its time budget", run_id)
                _advance(transitions, RunStatus.TIMED_OUT)
                return RunStatus.TIMED_OUT, "Run did not finish before the timeout"

            try:
                run = await self._client.beta.threads.runs.retrieve(run_id, thread_id=thread_id)
            except Exception as e:
                polls += 1
                if is_rate_limited(e):
                    logger.warning("[RUNS] Rate limit reached, waiting longer before next poll")
                    await self._sleep_within(
                        settings.poll_base_delay * settings.rate_limit_delay_multiplier, deadline
                    )
                    continue

                errors += 1
                if errors >= settings.poll_max_errors:
                    logger.error("[RUNS] Giving up on run %s after %d polling errors", run_id, errors)
                    _advance(transitions, RunStatus.FAILED)
                    return RunStatus.FAILED, str(e)

                logger.warning("[RUNS] Error polling run %s (%d/%d): %s", run_id, errors, settings.poll_max_errors, e)
                await self._sleep_within(delay, deadline)
                delay = min(delay * settings.retry_backoff_factor, settings.poll_max_delay)
                continue

            self._registry.update_run_activity(thread_id)
            status = map_provider_status(run.status)
            _advance(transitions, status)

            if status.is_terminal:
                return status, _run_error(run)

            if status == RunStatus.REQUIRES_ACTION:
                await self._submit_tool_outputs(thread_id, run_id, run, tool_dispatcher, user_id)
                _advance(transitions, RunStatus.IN_PROGRESS)
                polls = 0
                delay = settings.poll_base_delay
                continue

            polls += 1
            await self._sleep_within(delay, deadline)
            delay = min(delay * settings.retry_backoff_factor, settings.poll_max_delay)

        logger.warning(
            "[RUNS] Run %s did not complete within %d polls", run_id, settings.poll_max_retries
        )
        _advance(transitions, RunStatus.TIMED_OUT)
        return RunStatus.TIMED_OUT, f"Run did not complete within {settings.poll_max_retries} polls"

    async def _sleep_within(self, delay: float, deadline: float) -> None:
        remaining = deadline - self._clock()
        if remaining > 0:
            await self._sleep(min(delay, remaining))

    async def _submit_tool_outputs(
        self,
        thread_id: str,
        run_id: str,
        run: Any,
        tool_dispatcher: Optional[ToolDispatcher],
        user_id: Optional[str],
    ) -> None:
        raw_calls = _pending_tool_calls(run)
        if not raw_calls:
            logger.warning("[RUNS] Run %s requires action but has no tool calls", run_id)
            return

        calls = [parse_tool_call(raw) for raw in raw_calls]
        logger.info("[RUNS] Processing %d tool calls for run %s", len(calls), run_id)

        outputs = await self._bridge.dispatch_batch(calls, tool_dispatcher, user_id)
        tool_outputs = [output.model_dump() for output in outputs]

        await self._retry(
            lambda: self._client.beta.threads.runs.submit_tool_outputs(
                run_id,
                thread_id=thread_id,
                tool_outputs=tool_outputs,
            )
        )
        logger.info("[RUNS] Tool outputs submitted, continuing run %s", run_id)

    async def _completed_messages(
        self, thread_id: str, synthetic_id: Optional[str]
    ) -> List[AssistantMessage]:
        page = await self._retry(
            lambda: self._client.beta.threads.messages.list(thread_id, order="asc", limit=100)
        )
        synthetic_ids = frozenset({synthetic_id}) if synthetic_id else frozenset()

        messages = [
            to_assistant_message(message)
            for message in page.data
            if message.role == "assistant"
        ]
        messages = [
            m for m in messages if m.content.strip() and not is_synthetic(m, synthetic_ids)
        ]
        messages.sort(key=lambda m: m.created_at)
        return messages


def _advance(transitions: List[RunStatus], status: RunStatus) -> None:
    if not transitions or transitions[-1] != status:
        transitions.append(status)
