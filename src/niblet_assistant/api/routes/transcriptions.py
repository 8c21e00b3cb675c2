"""API route for voice message transcription."""

from __future__ import annotations

from fastapi import APIRouter, File, HTTPException, UploadFile

from ...schemas import TranscriptionResponse
from ...service import get_assistant_service

router = APIRouter()


@router.post("", response_model=TranscriptionResponse)
async def transcribe(audio: UploadFile = File(...)):
    """Transcribe an uploaded audio clip."""
    data = await audio.read()
    text = await get_assistant_service().transcribe_audio(data, audio.content_type)
    if not text:
        raise HTTPException(status_code=422, detail="Could not understand the audio")
    return TranscriptionResponse(text=text)
