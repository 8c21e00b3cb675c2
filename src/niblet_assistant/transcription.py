"""Speech-to-text for voice messages."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from openai import AsyncOpenAI

from .config import Settings, get_settings
from .retry import retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_MIME_TYPE = "audio/webm"


def filename_for_mime_type(mime_type: Optional[str]) -> str:
    """Pick an upload filename whose extension matches the audio encoding."""
    mime_type = (mime_type or DEFAULT_AUDIO_MIME_TYPE).lower()
    if "mp3" in mime_type or "mpeg" in mime_type:
        return "audio.mp3"
    if "wav" in mime_type:
        return "audio.wav"
    if "m4a" in mime_type or "mp4" in mime_type:
        return "audio.m4a"
    return "audio.webm"


async def transcribe_audio(
    client: AsyncOpenAI,
    audio: bytes,
    mime_type: Optional[str] = None,
    *,
    settings: Optional[Settings] = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Optional[str]:
    """Transcribe encoded audio. Returns None for empty input or when every attempt fails."""
    settings = settings or get_settings()
    if not audio:
        logger.warning("[TRANSCRIBE] Received empty audio payload")
        return None

    mime_type = mime_type or DEFAULT_AUDIO_MIME_TYPE
    filename = filename_for_mime_type(mime_type)
    logger.info("[TRANSCRIBE] Transcribing %d bytes as %s (%s)", len(audio), filename, mime_type)

    try:
        transcription = await retry_with_backoff(
            lambda: client.audio.transcriptions.create(
                file=(filename, audio, mime_type),
                model=settings.transcription_model,
            ),
            attempts=settings.retry_attempts,
            base_delay=settings.retry_base_delay,
            factor=settings.retry_backoff_factor,
            sleep=sleep,
        )
    except Exception:
        logger.exception("[TRANSCRIBE] Error transcribing audio")
        return None

    logger.info("[TRANSCRIBE] Audio transcription successful")
    return transcription.text
