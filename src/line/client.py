"""LINE Messaging API client.

Only ``reply`` is used by the command pipeline; the lookups are thin
pass-throughs kept for handlers and operators.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from src.config import LineConfig
from src.models import GroupSummary, ReplyPayload, TextMessage, UserProfile

logger = logging.getLogger(__name__)

# Platform limit for a single text message
MAX_TEXT_LENGTH = 5000


class LineAPIError(Exception):
    """Raised when a LINE platform call fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class LineClient:
    """Calls the LINE Messaging API with the channel access token."""

    def __init__(self, config: LineConfig) -> None:
        self._config = config

    async def reply(self, reply_token: str, messages: Sequence[TextMessage]) -> None:
        """Send ``messages`` to the conversation identified by ``reply_token``.

        Reply tokens are single use; callers must not retry with the same one.
        """
        if not reply_token:
            raise ValueError("reply_token must be a non-empty string")
        payload = ReplyPayload(reply_token=reply_token, messages=list(messages))
        await self._request(
            "POST",
            f"{self._config.api_base_url}/v2/bot/message/reply",
            json=payload.model_dump(mode="json", by_alias=True),
        )

    async def fetch_profile(self, user_id: str) -> UserProfile:
        resp = await self._request(
            "GET", f"{self._config.api_base_url}/v2/bot/profile/{user_id}",
        )
        return UserProfile.model_validate(_json_body(resp))

    async def fetch_group_summary(self, group_id: str) -> GroupSummary:
        resp = await self._request(
            "GET", f"{self._config.api_base_url}/v2/bot/group/{group_id}/summary",
        )
        return GroupSummary.model_validate(_json_body(resp))

    async def fetch_content(self, message_id: str) -> bytes:
        """Download the binary content (image, audio) of a user message."""
        resp = await self._request(
            "GET",
            f"{self._config.data_api_base_url}/v2/bot/message/{message_id}/content",
        )
        return resp.content

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self._config.channel_access_token}"}
        try:
            async with httpx.AsyncClient(timeout=self._config.timeout) as client:
                resp = await client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("LINE API %s %s failed: %s", method, url, exc)
            raise LineAPIError(f"LINE API unavailable: {exc}") from exc

        if resp.status_code >= 400:
            message = None
            try:
                body = resp.json()
                if isinstance(body, dict):
                    message = body.get("message")
            except (json.JSONDecodeError, ValueError):
                pass
            raise LineAPIError(
                message or f"LINE API returned {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp


def _json_body(resp: httpx.Response) -> dict[str, Any]:
    try:
        data = resp.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise LineAPIError("LINE API returned a non-JSON body") from exc
    if not isinstance(data, dict):
        raise LineAPIError("LINE API returned an unexpected body")
    return data
