"""Thread and assistant lifecycle: creation, appending user input, reading history."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from openai import AsyncOpenAI

from .config import Settings, get_settings
from .personalities import get_personality
from .retry import is_rate_limited, retry_with_backoff
from .run_state import RunStateRegistry, extract_run_id_from_error
from .schemas import AssistantMessage
from .tools import get_tool_definitions

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Posted on an empty thread so the first run produces a greeting.
SYNTHETIC_INIT_MESSAGE = "Hi Niblet! Please introduce yourself."

DEFAULT_IMAGE_TEXT = "Here's an image."


def build_message_content(text: str, image_url: Optional[str] = None) -> Union[str, List[Dict[str, Any]]]:
    """Plain string for text-only input, content parts when an image is attached."""
    if not image_url:
        return text
    return [
        {"type": "text", "text": text or DEFAULT_IMAGE_TEXT},
        {"type": "image_url", "image_url": {"url": image_url}},
    ]


def message_text(message: Any) -> str:
    """Concatenate the text blocks of a provider message."""
    parts = []
    for block in message.content or []:
        if getattr(block, "type", None) == "text":
            parts.append(block.text.value)
    return "\n\n".join(parts)


def to_assistant_message(message: Any) -> AssistantMessage:
    return AssistantMessage(
        id=message.id,
        content=message_text(message),
        created_at=datetime.fromtimestamp(message.created_at, tz=timezone.utc),
        role=message.role,
    )


def is_synthetic(message: AssistantMessage, synthetic_ids: frozenset = frozenset()) -> bool:
    return message.id in synthetic_ids or message.content.strip() == SYNTHETIC_INIT_MESSAGE


class ConversationManager:
    """Creates threads and assistants and appends user turns.

    Appends go through the run state registry so a message is never posted
    while a run is still working on the thread.
    """

    def __init__(
        self,
        client: AsyncOpenAI,
        registry: RunStateRegistry,
        *,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._registry = registry
        self._settings = settings or get_settings()
        self._sleep = sleep
        self._assistant_ids: Dict[str, str] = {}

    async def _retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        return await retry_with_backoff(
            fn,
            attempts=self._settings.retry_attempts,
            base_delay=self._settings.retry_base_delay,
            factor=self._settings.retry_backoff_factor,
            sleep=self._sleep,
        )

    async def create_thread(self) -> Optional[str]:
        """Create an empty conversation thread. Returns None if the provider keeps failing."""
        try:
            thread = await self._retry(lambda: self._client.beta.threads.create())
            thread_id = thread.id
        except Exception:
            logger.exception("[THREADS] Failed to create thread")
            return None

        logger.info("[THREADS] Created thread %s", thread_id)
        return thread_id

    async def get_or_create_assistant(self, personality: str, reuse: bool = False) -> Optional[str]:
        """Create an assistant configured for ``personality``.

        A fresh assistant is created on every call unless ``reuse`` is set, in
        which case an id created earlier by this manager for the same persona
        is returned as long as the provider still knows it.
        """
        persona = get_personality(personality)

        if reuse:
            cached_id = self._assistant_ids.get(persona.name)
            if cached_id:
                try:
                    await self._client.beta.assistants.retrieve(cached_id)
                    logger.info("[THREADS] Reusing assistant %s for %s", cached_id, persona.name)
                    return cached_id
                except Exception as e:
                    logger.warning(
                        "[THREADS] Cached assistant %s is unusable, creating a new one: %s",
                        cached_id,
                        e,
                    )
                    self._assistant_ids.pop(persona.name, None)

        try:
            assistant = await self._retry(
                lambda: self._client.beta.assistants.create(
                    model=self._settings.openai_model,
                    name=persona.name,
                    instructions=persona.instructions,
                    tools=get_tool_definitions(),
                    temperature=persona.temperature,
                )
            )
            assistant_id = assistant.id
        except Exception:
            logger.exception("[THREADS] Failed to create assistant for %s", persona.name)
            return None

        self._assistant_ids[persona.name] = assistant_id
        logger.info("[THREADS] Created assistant %s (%s)", assistant_id, persona.name)
        return assistant_id

    async def _post_message(self, thread_id: str, content: Union[str, List[Dict[str, Any]]]) -> None:
        await self._client.beta.threads.messages.create(thread_id, role="user", content=content)

    async def add_message_to_thread(
        self,
        thread_id: str,
        text: str,
        image_url: Optional[str] = None,
    ) -> bool:
        """Append a user message, waiting out any run in flight on the thread.

        If the wait times out the registry entry is forced inactive and the
        append is attempted anyway. A provider "run is active" rejection is
        reconciled into the registry and retried once after a bounded wait.
        """
        logger.info(
            "[THREADS] Adding message to thread %s, has image: %s", thread_id, bool(image_url)
        )

        if self._registry.has_active_run(thread_id):
            finished = await self._registry.wait_for_run_completion(
                thread_id, timeout=self._settings.message_wait_timeout
            )
            if not finished:
                logger.warning(
                    "[THREADS] Run on thread %s did not finish in time, forcing it inactive",
                    thread_id,
                )
                self._registry.set_run_inactive(thread_id)

        content = build_message_content(text, image_url)
        try:
            await self._post_message(thread_id, content)
            return True
        except Exception as e:
            conflicting_run = extract_run_id_from_error(str(e))
            if conflicting_run is None:
                if is_rate_limited(e):
                    logger.warning("[THREADS] Rate limited while adding message to %s", thread_id)
                elif image_url and getattr(e, "status_code", None) == 400:
                    logger.error("[THREADS] Bad request with image URL %s", image_url)
                else:
                    logger.exception("[THREADS] Error adding message to thread %s", thread_id)
                return False

        logger.warning(
            "[THREADS] Thread %s is busy with %s, waiting before retrying", thread_id, conflicting_run
        )
        if not self._registry.has_active_run(thread_id):
            self._registry.set_run_active(thread_id, conflicting_run)
        await self._registry.wait_for_run_completion(
            thread_id, timeout=self._settings.conflict_wait_timeout
        )
        self._registry.set_run_inactive(thread_id)

        try:
            await self._post_message(thread_id, content)
            return True
        except Exception:
            logger.exception("[THREADS] Retry after run conflict failed for thread %s", thread_id)
            return False

    async def get_thread_messages(self, thread_id: str, limit: int = 100) -> List[AssistantMessage]:
        """Most recent ``limit`` messages of every role, oldest first."""
        try:
            page = await self._retry(
                lambda: self._client.beta.threads.messages.list(thread_id, limit=limit, order="desc")
            )
        except Exception:
            logger.exception("[THREADS] Error fetching messages for thread %s", thread_id)
            return []

        messages = [to_assistant_message(message) for message in page.data]
        messages = [m for m in messages if m.content.strip() and not is_synthetic(m)]
        messages.sort(key=lambda m: m.created_at)
        return messages
