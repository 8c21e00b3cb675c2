"""Assistant service: the public face of run orchestration.

Composes the conversation manager, run engine and transcription adapter over a
single OpenAI client and a single run state registry. No operation here
raises; failures come back as ``None``, ``False``, ``[]`` or a failed
``RunResult``.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from openai import AsyncOpenAI

from . import provider
from .config import Settings, get_settings
from .personalities import DEFAULT_PERSONALITY
from .provider import ProviderUnavailableError, create_openai_client
from .run_state import RunStateRegistry, get_run_state_registry
from .runs import RunEngine
from .schemas import (
    AssistantMessage,
    InitializeChatResponse,
    RunResult,
    RunStatus,
    SendMessageRequest,
    SendMessageResponse,
    WelcomeMessage,
)
from .storage.firestore import update_user_profile
from .threads import ConversationManager
from .tools import ToolDispatchBridge, ToolDispatcher
from .tools.app_dispatcher import build_app_tool_dispatcher
from .transcription import transcribe_audio as _transcribe_audio

logger = logging.getLogger(__name__)

WELCOME_FALLBACK = "Hi, I'm Niblet! How can I help you today?"

FALLBACK_TIMED_OUT = (
    "I'm taking a while to think about that. Give me a moment and try asking again."
)
FALLBACK_NOT_SENT = (
    "I'm having trouble connecting right now. Please check your connection and try again."
)
FALLBACK_FAILED = "Sorry, I couldn't process that. Could you try rephrasing?"


def fallback_text(status: str) -> Optional[str]:
    """User-facing text shown in place of an assistant reply that never came."""
    if status == RunStatus.COMPLETED.value:
        return None
    if status == RunStatus.TIMED_OUT.value:
        return FALLBACK_TIMED_OUT
    if status == "not_sent":
        return FALLBACK_NOT_SENT
    return FALLBACK_FAILED


async def _initialization_dispatcher(tool_name: str, args: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "message": "Operation completed during initialization"}


class AssistantService:
    """Facade over threads, runs and transcription for one provider client."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        registry: Optional[RunStateRegistry] = None,
        *,
        settings: Optional[Settings] = None,
        bridge: Optional[ToolDispatchBridge] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self._registry = registry or get_run_state_registry()
        self._client = client
        self._bridge = bridge
        self._clock = clock
        self._sleep = sleep
        self._conversations: Optional[ConversationManager] = None
        self._engine: Optional[RunEngine] = None

    @property
    def registry(self) -> RunStateRegistry:
        return self._registry

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = create_openai_client(self._settings)
        return self._client

    def _get_conversations(self) -> ConversationManager:
        if self._conversations is None:
            self._conversations = ConversationManager(
                self._get_client(),
                self._registry,
                settings=self._settings,
                sleep=self._sleep,
            )
        return self._conversations

    def _get_engine(self) -> RunEngine:
        if self._engine is None:
            self._engine = RunEngine(
                self._get_client(),
                self._registry,
                bridge=self._bridge,
                settings=self._settings,
                clock=self._clock,
                sleep=self._sleep,
            )
        return self._engine

    async def create_thread(self) -> Optional[str]:
        try:
            conversations = self._get_conversations()
        except ProviderUnavailableError as e:
            logger.error("Cannot create thread: %s", e)
            return None
        return await conversations.create_thread()

    async def get_or_create_assistant(
        self, personality: str = DEFAULT_PERSONALITY, reuse: bool = False
    ) -> Optional[str]:
        try:
            conversations = self._get_conversations()
        except ProviderUnavailableError as e:
            logger.error("Cannot create assistant: %s", e)
            return None
        return await conversations.get_or_create_assistant(personality, reuse=reuse)

    async def add_message_to_thread(
        self, thread_id: str, text: str, image_url: Optional[str] = None
    ) -> bool:
        try:
            conversations = self._get_conversations()
        except ProviderUnavailableError as e:
            logger.error("Cannot add message: %s", e)
            return False
        return await conversations.add_message_to_thread(thread_id, text, image_url)

    async def get_thread_messages(self, thread_id: str, limit: int = 100) -> List[AssistantMessage]:
        try:
            conversations = self._get_conversations()
        except ProviderUnavailableError as e:
            logger.error("Cannot list messages: %s", e)
            return []
        return await conversations.get_thread_messages(thread_id, limit=limit)

    async def run_with_outcome(
        self,
        thread_id: str,
        assistant_id: str,
        personality: str = DEFAULT_PERSONALITY,
        tool_dispatcher: Optional[ToolDispatcher] = None,
        user_id: Optional[str] = None,
        expects_image: bool = False,
    ) -> RunResult:
        try:
            engine = self._get_engine()
        except ProviderUnavailableError as e:
            logger.error("Cannot run assistant: %s", e)
            return RunResult(
                status=RunStatus.FAILED,
                error=str(e),
                transitions=[RunStatus.STARTING, RunStatus.FAILED],
            )
        return await engine.run_with_outcome(
            thread_id,
            assistant_id,
            personality,
            tool_dispatcher,
            user_id=user_id,
            expects_image=expects_image,
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
        result = await self.run_with_outcome(
            thread_id,
            assistant_id,
            personality,
            tool_dispatcher,
            user_id=user_id,
            expects_image=expects_image,
        )
        return result.messages

    async def transcribe_audio(self, audio: bytes, mime_type: Optional[str] = None) -> Optional[str]:
        try:
            client = self._get_client()
        except ProviderUnavailableError as e:
            logger.error("Cannot transcribe audio: %s", e)
            return None
        return await _transcribe_audio(
            client, audio, mime_type, settings=self._settings, sleep=self._sleep
        )

    async def check_provider_availability(self) -> bool:
        return await provider.check_provider_availability(self._settings)

    async def initialize_conversation(
        self, user_id: str, personality: str = DEFAULT_PERSONALITY
    ) -> Optional[InitializeChatResponse]:
        """Create a thread and assistant for the user and produce the welcome message.

        Returns None when the thread or the assistant cannot be created.
        """
        thread_id = await self.create_thread()
        if not thread_id:
            return None

        assistant_id = await self.get_or_create_assistant(personality)
        if not assistant_id:
            return None

        try:
            await asyncio.to_thread(
                update_user_profile,
                user_id,
                {"threadId": thread_id, "assistantId": assistant_id, "aiPersonality": personality},
                self._settings,
            )
        except Exception as e:
            logger.warning(f"Failed to save chat ids to profile for user {user_id}: {e}")

        messages = await self.run(
            thread_id,
            assistant_id,
            personality,
            _initialization_dispatcher,
            user_id=user_id,
        )

        if messages:
            last = messages[-1]
            welcome = WelcomeMessage(id=last.id, content=last.content, timestamp=last.created_at)
        else:
            welcome = WelcomeMessage(
                id="welcome",
                content=WELCOME_FALLBACK,
                timestamp=datetime.now(timezone.utc),
            )

        return InitializeChatResponse(
            thread_id=thread_id,
            assistant_id=assistant_id,
            personality=personality,
            welcome_message=welcome,
        )

    async def send_message(
        self,
        thread_id: str,
        request: SendMessageRequest,
        tool_dispatcher: Optional[ToolDispatcher] = None,
    ) -> SendMessageResponse:
        """Append the user's turn, run the assistant and pick a fallback if needed."""
        added = await self.add_message_to_thread(thread_id, request.message, request.image_url)
        if not added:
            return SendMessageResponse(
                status="not_sent", messages=[], fallback=fallback_text("not_sent")
            )

        if tool_dispatcher is None:
            tool_dispatcher = build_app_tool_dispatcher(request.user_id)

        result = await self.run_with_outcome(
            thread_id,
            request.assistant_id,
            request.personality,
            tool_dispatcher,
            user_id=request.user_id,
            expects_image=bool(request.image_url),
        )

        status = result.status.value
        fallback = fallback_text(status)
        if result.ok and not result.messages:
            fallback = FALLBACK_FAILED
        return SendMessageResponse(status=status, messages=result.messages, fallback=fallback)


_service: AssistantService | None = None


def get_assistant_service() -> AssistantService:
    """Get or create the process-wide assistant service."""
    global _service

    if _service is None:
        _service = AssistantService()

    return _service
