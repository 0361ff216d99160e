"""Tests for the OpenAI-compatible image client."""

import base64
import json

import httpx
import pytest

from config.exceptions import (
    LLMError,
    LLMRateLimitError,
    LLMResponseParseError,
    LLMTimeoutError,
    ProviderAuthError,
    QuotaExceededError,
)


def _client(settings, handler):
    from tools.image_client import ImageClient
    return ImageClient(settings, transport=httpx.MockTransport(handler))


class TestImageClient:
    @pytest.mark.asyncio
    async def test_returns_url_and_sends_vivid_style(self, settings):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"url": "https://img.example/1.png"}]})

        url = await _client(settings, handler).generate("a lighthouse", "vivid")
        assert url == "https://img.example/1.png"
        assert seen["path"].endswith("/images/generations")
        assert seen["auth"] == "Bearer test-image-key"
        assert seen["body"]["style"] == "vivid"
        assert seen["body"]["model"] == settings.image_model

    @pytest.mark.asyncio
    async def test_non_api_style_not_sent(self, settings):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"data": [{"url": "u"}]})

        await _client(settings, handler).generate("p", "photographic")
        assert "style" not in seen["body"]

    @pytest.mark.asyncio
    async def test_b64_saved_to_cover_dir(self, settings):
        payload = base64.b64encode(b"\x89PNG fake").decode()

        def handler(request):
            return httpx.Response(200, json={"data": [{"b64_json": payload}]})

        path = await _client(settings, handler).generate("p", "vivid", name_hint="My Book-front")
        assert path.startswith(str(settings.cover_output_dir))
        assert "my-book-front" in path
        with open(path, "rb") as f:
            assert f.read() == b"\x89PNG fake"

    @pytest.mark.asyncio
    async def test_missing_key_raises_auth_error(self, settings):
        settings.image_api_key = None
        with pytest.raises(ProviderAuthError):
            await _client(settings, lambda r: httpx.Response(200)).generate("p", "vivid")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,expected", [
        (401, "bad key", ProviderAuthError),
        (429, "slow down", LLMRateLimitError),
        (429, "You exceeded your current quota", QuotaExceededError),
        (504, "gateway", LLMTimeoutError),
        (500, "server", LLMError),
    ])
    async def test_status_errors(self, settings, status, body, expected):
        def handler(request):
            return httpx.Response(status, text=body)

        with pytest.raises(expected):
            await _client(settings, handler).generate("p", "vivid")

    @pytest.mark.asyncio
    async def test_transport_timeout(self, settings):
        def handler(request):
            raise httpx.ReadTimeout("read timed out", request=request)

        with pytest.raises(LLMTimeoutError):
            await _client(settings, handler).generate("p", "vivid")

    @pytest.mark.asyncio
    async def test_empty_data_raises_parse_error(self, settings):
        def handler(request):
            return httpx.Response(200, json={"data": []})

        with pytest.raises(LLMResponseParseError):
            await _client(settings, handler).generate("p", "vivid")
