"""Tests for audio transcription."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from niblet_assistant.transcription import filename_for_mime_type, transcribe_audio

from tests.helpers import ProviderError


class TestFilenameForMimeType:
    """Tests for filename_for_mime_type."""

    @pytest.mark.parametrize(
        "mime_type, filename",
        [
            ("audio/mp3", "audio.mp3"),
            ("audio/mpeg", "audio.mp3"),
            ("audio/wav", "audio.wav"),
            ("audio/x-m4a", "audio.m4a"),
            ("audio/mp4", "audio.m4a"),
            ("audio/webm;codecs=opus", "audio.webm"),
            ("audio/ogg", "audio.webm"),
            (None, "audio.webm"),
        ],
    )
    def test_maps_mime_type(self, mime_type, filename):
        """Should choose the extension matching the encoding."""
        assert filename_for_mime_type(mime_type) == filename


class TestTranscribeAudio:
    """Tests for transcribe_audio."""

    @pytest.mark.asyncio
    async def test_transcribes(self, openai_client, mock_settings, clock):
        """Should upload the audio with a matching filename and the configured model."""
        text = await transcribe_audio(
            openai_client, b"\x00\x01", "audio/mpeg", settings=mock_settings, sleep=clock.sleep
        )

        assert text == "two eggs and toast"
        openai_client.audio.transcriptions.create.assert_awaited_once_with(
            file=("audio.mp3", b"\x00\x01", "audio/mpeg"),
            model="whisper-1",
        )

    @pytest.mark.asyncio
    async def test_defaults_to_webm(self, openai_client, mock_settings, clock):
        """Should assume webm when no MIME type is given."""
        await transcribe_audio(openai_client, b"\x00", settings=mock_settings, sleep=clock.sleep)

        kwargs = openai_client.audio.transcriptions.create.await_args.kwargs
        assert kwargs["file"] == ("audio.webm", b"\x00", "audio/webm")

    @pytest.mark.asyncio
    async def test_empty_audio(self, openai_client, mock_settings):
        """Should not call the provider for empty audio."""
        assert await transcribe_audio(openai_client, b"", settings=mock_settings) is None
        openai_client.audio.transcriptions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_retries_then_gives_up(self, openai_client, mock_settings, clock):
        """Should try three times and return None."""
        openai_client.audio.transcriptions.create = AsyncMock(side_effect=ProviderError("bad gateway", 502))

        text = await transcribe_audio(
            openai_client, b"\x00", "audio/wav", settings=mock_settings, sleep=clock.sleep
        )

        assert text is None
        assert openai_client.audio.transcriptions.create.await_count == 3
        assert clock.sleeps == [1.0, 1.5]
