"""Tests for provider client construction and availability checks."""

from __future__ import annotations

import httpx
import pytest

from niblet_assistant.provider import (
    ProviderUnavailableError,
    check_provider_availability,
    create_openai_client,
)


class TestCreateOpenAIClient:
    """Tests for create_openai_client."""

    def test_requires_api_key(self, mock_settings):
        """Should refuse to build a client without an API key."""
        settings = mock_settings.model_copy(update={"openai_api_key": None})

        with pytest.raises(ProviderUnavailableError):
            create_openai_client(settings)

    def test_builds_client(self, mock_settings):
        """Should configure the client from settings."""
        client = create_openai_client(mock_settings)

        assert client.api_key == "sk-test"
        assert str(client.base_url).startswith("https://api.openai.com/v1")


class TestCheckProviderAvailability:
    """Tests for check_provider_availability."""

    @pytest.mark.asyncio
    async def test_available(self, mock_settings):
        """Should HEAD the models endpoint with the API key."""
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        available = await check_provider_availability(mock_settings, transport=httpx.MockTransport(handler))

        assert available is True
        assert seen[0].method == "HEAD"
        assert str(seen[0].url) == "https://api.openai.com/v1/models"
        assert seen[0].headers["Authorization"] == "Bearer sk-test"

    @pytest.mark.asyncio
    async def test_error_status(self, mock_settings):
        """Should report unavailable on a non-success status."""
        transport = httpx.MockTransport(lambda request: httpx.Response(503))

        assert await check_provider_availability(mock_settings, transport=transport) is False

    @pytest.mark.asyncio
    async def test_network_error(self, mock_settings):
        """Should report unavailable when the request fails."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        available = await check_provider_availability(mock_settings, transport=httpx.MockTransport(handler))

        assert available is False

    @pytest.mark.asyncio
    async def test_missing_key(self, mock_settings):
        """Should not make a request without an API key."""
        settings = mock_settings.model_copy(update={"openai_api_key": None})

        assert await check_provider_availability(settings) is False
