"""Chat-completion backend client (OpenAI-compatible HTTP API).

Covers the three calls the bot makes against the completion backend:
chat completions, image generation and audio transcription. Every failure,
whether transport, HTTP status or response shape, surfaces as
``CompletionError``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from src.config import (
    IMAGE_SIZE_256,
    IMAGE_SIZE_512,
    IMAGE_SIZE_1024,
    MODEL_DALL_E_3,
    CompletionConfig,
)
from src.models import ChatTurn, CompletionOptions

logger = logging.getLogger(__name__)


class CompletionError(Exception):
    """Raised when the completion backend cannot produce a usable result."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


def has_image(history: Sequence[ChatTurn]) -> bool:
    """Return True if any turn carries an image reference."""
    return any(
        isinstance(turn.content, list)
        and any(part.image_url is not None for part in turn.content)
        for turn in history
    )


class CompletionClient:
    """Sends requests to the completion backend with bearer auth."""

    def __init__(self, config: CompletionConfig) -> None:
        self._config = config

    async def complete(
        self,
        history: Sequence[ChatTurn],
        options: CompletionOptions | None = None,
    ) -> str:
        """Return the generated text for ``history``.

        When any turn contains an image reference the configured vision
        model is used in place of the requested one.
        """
        body = self.build_completion_body(history, options)
        data = await self._post_json("/v1/chat/completions", json=body)
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise CompletionError("Malformed completion response") from exc
        if not isinstance(content, str) or not content:
            raise CompletionError("Completion response has no content")
        return content

    def build_completion_body(
        self,
        history: Sequence[ChatTurn],
        options: CompletionOptions | None = None,
    ) -> dict[str, Any]:
        opts = options or CompletionOptions()
        cfg = self._config
        model = opts.model or cfg.completion_model
        if has_image(history):
            model = cfg.vision_model
        return {
            "model": model,
            "messages": [turn.model_dump(mode="json", exclude_none=True) for turn in history],
            "temperature": _pick(opts.temperature, cfg.temperature),
            "max_tokens": _pick(opts.max_tokens, cfg.max_tokens),
            "frequency_penalty": _pick(opts.frequency_penalty, cfg.frequency_penalty),
            "presence_penalty": _pick(opts.presence_penalty, cfg.presence_penalty),
        }

    async def create_image(
        self,
        prompt: str,
        model: str | None = None,
        size: str | None = None,
        quality: str | None = None,
        n: int = 1,
    ) -> list[str]:
        """Generate ``n`` images and return their URLs."""
        model = model or self._config.image_generation_model
        size = size or self._config.image_generation_size
        # dall-e-3 only renders 1024px and up
        if model == MODEL_DALL_E_3 and size in (IMAGE_SIZE_256, IMAGE_SIZE_512):
            size = IMAGE_SIZE_1024
        data = await self._post_json("/v1/images/generations", json={
            "model": model,
            "prompt": prompt,
            "size": size,
            "quality": quality or self._config.image_generation_quality,
            "n": n,
        })
        try:
            return [item["url"] for item in data["data"]]
        except (KeyError, TypeError) as exc:
            raise CompletionError("Malformed image generation response") from exc

    async def transcribe(
        self, data: bytes, filename: str, model: str | None = None,
    ) -> str:
        """Transcribe an audio file and return its text."""
        result = await self._post_json(
            "/v1/audio/transcriptions",
            files={"file": (filename, data)},
            data={"model": model or self._config.transcription_model},
        )
        text = result.get("text") if isinstance(result, dict) else None
        if not isinstance(text, str):
            raise CompletionError("Malformed transcription response")
        return text

    async def _post_json(self, path: str, **kwargs: Any) -> Any:
        url = f"{self._config.base_url.rstrip('/')}{path}"
        headers = {"Authorization": f"Bearer {self._config.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self._config.timeout) as client:
                resp = await client.post(url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("Completion backend request to %s failed: %s", path, exc)
            raise CompletionError(f"Completion backend unavailable: {exc}") from exc

        try:
            data = resp.json()
        except (json.JSONDecodeError, ValueError):
            data = None

        if resp.status_code >= 400:
            raise CompletionError(
                _error_message(data) or f"Completion backend returned {resp.status_code}",
                status_code=resp.status_code,
            )
        if data is None:
            raise CompletionError("Completion backend returned a non-JSON body")
        return data


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


def _error_message(data: Any) -> str | None:
    """Extract ``error.message`` from an OpenAI-style error body."""
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return None
