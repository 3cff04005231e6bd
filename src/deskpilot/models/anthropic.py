"""Anthropic Messages API client."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import httpx

from deskpilot.capture import EncodedImage
from deskpilot.config import Configuration
from deskpilot.models.base import Oracle, OracleError, OracleResponse
from deskpilot.util.logging import get_logger, redact


logger = get_logger(__name__)

MAX_ATTEMPTS = 3

_MEDIA_SIGNATURES = (
    ("/9j/", "image/jpeg"),
    ("iVBOR", "image/png"),
    ("R0lGOD", "image/gif"),
    ("UklGR", "image/webp"),
)


def detect_media_type(data: str) -> str:
    """Guess an image media type from the start of its base64 payload."""
    for prefix, media_type in _MEDIA_SIGNATURES:
        if data.startswith(prefix):
            return media_type
    return "image/png"


class _RetryableError(Exception):
    pass


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return response.text[:200]
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            if isinstance(error.get("type"), str):
                return f"{error['type']}: {error['message']}"
            return error["message"]
    return response.text[:200]


class AnthropicOracle(Oracle):
    """Async HTTP client for the Anthropic Messages API.

    Settings are read from ``config.current`` on every request, so updates
    made between calls apply to the next request.
    """

    def __init__(
        self,
        config: Configuration,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self.transport = transport
        self._sleep = sleep

    def is_configured(self) -> bool:
        return bool(self.config.current.anthropic_api_key)

    async def complete(self, system: str, prompt: str) -> OracleResponse:
        return await self._send(system, [{"type": "text", "text": prompt}])

    async def complete_with_image(
        self, system: str, prompt: str, image: EncodedImage
    ) -> OracleResponse:
        data = image.base64()
        content = [
            {
                "type": "image",
                "source": {
                    "type": "base64",
                    "media_type": image.media_type or detect_media_type(data),
                    "data": data,
                },
            },
            {"type": "text", "text": prompt},
        ]
        return await self._send(system, content)

    async def _send(self, system: str, content: list[dict[str, Any]]) -> OracleResponse:
        settings = self.config.current
        if not settings.anthropic_api_key:
            raise OracleError("API key not configured. Set ANTHROPIC_API_KEY.")
        headers = {
            "x-api-key": settings.anthropic_api_key,
            "anthropic-version": settings.anthropic_version,
            "content-type": "application/json",
        }
        payload = {
            "model": settings.model,
            "max_tokens": settings.max_tokens,
            "system": system,
            "messages": [{"role": "user", "content": content}],
        }
        timeout = httpx.Timeout(settings.timeout_seconds)

        last_error: Exception | None = None
        for attempt in range(MAX_ATTEMPTS):
            try:
                async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
                    response = await client.post(
                        settings.anthropic_base_url, headers=headers, json=payload
                    )
                if response.status_code == 429 or response.status_code >= 500:
                    raise _RetryableError(
                        f"HTTP {response.status_code}: {_error_message(response)}"
                    )
                if response.status_code >= 400:
                    raise OracleError(f"HTTP {response.status_code}: {_error_message(response)}")
                return self._parse(response)
            except (httpx.HTTPError, _RetryableError) as exc:
                last_error = exc
                logger.warning(
                    "Oracle request attempt %s failed: %s",
                    attempt + 1,
                    redact(str(exc), [settings.anthropic_api_key]),
                )
                if attempt == MAX_ATTEMPTS - 1:
                    break
                await self._sleep(2**attempt)
        raise OracleError(f"Oracle request failed: {last_error}")

    def _parse(self, response: httpx.Response) -> OracleResponse:
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise OracleError("Malformed JSON response") from exc
        if not isinstance(data, dict):
            raise OracleError("Malformed JSON response")
        blocks = data.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        usage = data.get("usage") if isinstance(data.get("usage"), dict) else {}
        return OracleResponse(text=text, model=data.get("model"), usage=usage)
