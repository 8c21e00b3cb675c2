"""OpenAI client construction and reachability checks."""

from __future__ import annotations

import logging

import httpx
from openai import AsyncOpenAI

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class ProviderUnavailableError(Exception):
    """The assistant provider cannot be used (missing key, bad config)."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


def create_openai_client(settings: Settings | None = None) -> AsyncOpenAI:
    settings = settings or get_settings()
    if not settings.openai_api_key:
        raise ProviderUnavailableError("OPENAI_API_KEY is not configured in the environment")
    return AsyncOpenAI(api_key=settings.openai_api_key, base_url=settings.openai_base_url)


async def check_provider_availability(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> bool:
    """HEAD the models endpoint to see whether the provider is reachable."""
    settings = settings or get_settings()
    if not settings.openai_api_key:
        logger.warning("OpenAI API key is missing")
        return False

    try:
        async with httpx.AsyncClient(transport=transport) as client:
            response = await client.head(
                f"{settings.openai_base_url.rstrip('/')}/models",
                headers={"Authorization": f"Bearer {settings.openai_api_key}"},
                timeout=settings.availability_timeout,
            )
    except httpx.HTTPError as e:
        logger.warning(f"OpenAI API appears to be unavailable: {e}")
        return False

    return response.is_success
