"""Async client for OpenAI-compatible image generation endpoints."""

import base64
import logging
import re
import time
from pathlib import Path
from typing import Optional

import httpx

from config.settings import Settings
from config.exceptions import (
    LLMError,
    LLMRateLimitError,
    LLMResponseParseError,
    LLMTimeoutError,
    ProviderAuthError,
    QuotaExceededError,
)

logger = logging.getLogger(__name__)

# Values the images API accepts for its own "style" parameter
_API_STYLES = {"vivid", "natural"}


def _slugify(text: str, limit: int = 50) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:limit] or "cover"


class ImageClient:
    """Generates one image per call and returns a URL or a local file path.

    When the endpoint answers with base64 data instead of a URL, the image is
    written under `cover_output_dir` and the file path is returned.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or Settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.image_api_base_url,
            headers={
                "Authorization": f"Bearer {self.settings.image_api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(
                connect=30.0,
                read=self.settings.image_timeout_seconds,
                write=30.0,
                pool=30.0,
            ),
            transport=self._transport,
        )

    async def generate(
        self,
        prompt: str,
        style: str,
        name_hint: str = "cover",
        model: Optional[str] = None,
    ) -> str:
        """Generate an image for the prompt.

        Raises:
            ProviderAuthError: No image API key configured, or it was rejected.
            LLMRateLimitError / QuotaExceededError / LLMTimeoutError / LLMError
        """
        if not self.settings.image_api_key:
            raise ProviderAuthError("IMAGE_API_KEY is required for cover generation")

        body = {
            "model": model or self.settings.image_model,
            "prompt": prompt,
            "n": 1,
            "size": self.settings.image_size,
        }
        if style in _API_STYLES:
            body["style"] = style

        logger.info("Requesting image: model=%s, style=%s", body["model"], style)
        try:
            async with self._client() as client:
                resp = await client.post("/images/generations", json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(f"Image request timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise self._status_error(e.response) from e
        except httpx.HTTPError as e:
            raise LLMError(f"Image request failed: {e}") from e

        items = data.get("data") or []
        if not items:
            raise LLMResponseParseError("No images returned by the image provider", raw_response=str(data))
        first = items[0]
        if first.get("url"):
            return first["url"]
        if first.get("b64_json"):
            return self._save_b64(first["b64_json"], name_hint)
        raise LLMResponseParseError("Image response contained neither url nor b64_json", raw_response=str(first))

    def _save_b64(self, payload: str, name_hint: str) -> str:
        out_dir = Path(self.settings.cover_output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / f"{_slugify(name_hint)}-{int(time.time() * 1000)}.png"
        path.write_bytes(base64.b64decode(payload))
        logger.info("Image saved to %s", path)
        return str(path)

    @staticmethod
    def _status_error(response: httpx.Response) -> LLMError:
        status = response.status_code
        body = response.text[:500]
        if status in (401, 403):
            return ProviderAuthError(f"Image API key rejected ({status})", {"body": body})
        if status == 429:
            if "quota" in body.lower() or "billing" in body.lower():
                return QuotaExceededError(f"Image provider quota exceeded ({status})", {"body": body})
            retry_after = response.headers.get("retry-after")
            return LLMRateLimitError(
                f"Image provider rate limit exceeded ({status})",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if status in (408, 504):
            return LLMTimeoutError(f"Image provider timeout ({status})")
        return LLMError(f"Image generation failed: {status} {body}")
