"""API routes for assistant conversations."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from ...schemas import (
    AssistantMessage,
    InitializeChatRequest,
    InitializeChatResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from ...service import get_assistant_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=InitializeChatResponse, response_model_by_alias=True)
async def initialize_chat(request: InitializeChatRequest):
    """Start a conversation and return the assistant's welcome message."""
    service = get_assistant_service()
    response = await service.initialize_conversation(request.user_id, request.personality)
    if response is None:
        raise HTTPException(status_code=500, detail="Failed to initialize chat")

    logger.info(f"Initialized chat {response.thread_id} for user {request.user_id}")
    return response


@router.get("/{thread_id}/messages", response_model=list[AssistantMessage], response_model_by_alias=True)
async def list_messages(thread_id: str, limit: int = Query(100, ge=1, le=100)):
    """Return the thread's history, oldest first."""
    service = get_assistant_service()
    return await service.get_thread_messages(thread_id, limit=limit)


@router.post("/{thread_id}/messages", response_model=SendMessageResponse, response_model_by_alias=True)
async def send_message(thread_id: str, request: SendMessageRequest):
    """Send the user's message and run the assistant on it."""
    if not request.message and not request.image_url:
        raise HTTPException(status_code=400, detail="A message or an image is required")

    service = get_assistant_service()
    return await service.send_message(thread_id, request)
