"""Shared test fixtures for the LINE command bot."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.audit.logger import AuditLogger
from src.completion.client import CompletionClient
from src.config import CompletionConfig, LineConfig
from src.line.client import LineClient


@pytest.fixture
def completion_config() -> CompletionConfig:
    return CompletionConfig(
        api_key="sk-test",
        base_url="https://llm.test",
        completion_model="text-model",
        vision_model="vision-model",
        temperature=0.5,
        max_tokens=100,
        frequency_penalty=0.1,
        presence_penalty=0.2,
    )


@pytest.fixture
def line_config() -> LineConfig:
    return LineConfig(channel_access_token="line-token", channel_secret="line-secret")


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def completion_client() -> AsyncMock:
    client = AsyncMock(spec=CompletionClient)
    client.complete.return_value = "generated reply"
    return client


@pytest.fixture
def line_client() -> AsyncMock:
    return AsyncMock(spec=LineClient)


# --- Factory functions for test data ---


def make_http_client(**attrs: Any) -> AsyncMock:
    """Mock of an ``httpx.AsyncClient`` usable as an async context manager."""
    client = AsyncMock(**attrs)
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


def make_http_response(
    status_code: int = 200,
    json_body: Any = None,
    content: bytes = b"",
) -> MagicMock:
    resp = MagicMock(status_code=status_code, content=content)
    if json_body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_body
    return resp


def make_completion_body(content: str = "generated reply") -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            },
        ],
    }


def make_text_event(
    text: str = "Ai hello",
    reply_token: str | None = "reply-token-1",
    user_id: str = "U123",
) -> dict[str, Any]:
    """Factory for a LINE text message event as it arrives on the wire."""
    event: dict[str, Any] = {
        "type": "message",
        "mode": "active",
        "timestamp": 1700000000000,
        "source": {"type": "user", "userId": user_id},
        "webhookEventId": "01H000000000000000000000",
        "message": {"id": "468789577898262530", "type": "text", "text": text},
    }
    if reply_token is not None:
        event["replyToken"] = reply_token
    return event


def make_event(event_type: str = "message", **kwargs: Any) -> dict[str, Any]:
    """Factory for an arbitrary LINE event with sensible defaults."""
    event: dict[str, Any] = {
        "type": event_type,
        "timestamp": 1700000000000,
        "source": {"type": "user", "userId": "U123"},
        "replyToken": "reply-token-1",
    }
    event.update(kwargs)
    return event
