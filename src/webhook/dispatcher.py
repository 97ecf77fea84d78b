"""Webhook event dispatcher.

Classifies each event of a webhook batch and runs the message events through
the command relay, one task per event.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from src.models import EventType, WebhookEvent
from src.webhook.models import RelayOutcome, RelayStatus
from src.webhook.relay import CommandRelay

logger = logging.getLogger(__name__)


class EventDispatcher:
    """Routes webhook events to the relay; non-message events are skipped."""

    def __init__(self, relay: CommandRelay) -> None:
        self._relay = relay

    async def dispatch(self, events: Sequence[dict[str, Any]]) -> list[RelayOutcome]:
        """Process every event concurrently and return one outcome per event.

        A failure in one event never prevents its siblings from completing.
        """
        results = await asyncio.gather(
            *(self.dispatch_event(raw) for raw in events),
            return_exceptions=True,
        )
        outcomes: list[RelayOutcome] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.error("Unhandled error while processing event", exc_info=result)
                outcomes.append(RelayOutcome(status=RelayStatus.FAILED, error=str(result)))
            else:
                outcomes.append(result)
        return outcomes

    async def dispatch_event(self, raw: dict[str, Any]) -> RelayOutcome:
        try:
            event = WebhookEvent.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Skipping malformed webhook event: %s", exc)
            return RelayOutcome.ignored()

        if event.type != EventType.MESSAGE or event.message is None:
            return RelayOutcome.ignored()
        if not event.reply_token:
            logger.info("Message event without reply token skipped")
            return RelayOutcome.ignored()

        return await self._relay.handle_message(
            event.message, event.reply_token, event.source,
        )
