"""Command relay: prompt -> completion backend -> LINE reply.

Each recognized command produces exactly one completion call and at most one
reply. Pipeline stages:
1. Build a single-turn chat history from the prompt
2. Request a completion
3. Reply with the generated text, or with the fallback text on failure
4. Audit log
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.completion.client import CompletionError
from src.line.client import MAX_TEXT_LENGTH, LineAPIError
from src.models import AuditEvent, AuditEventType, ChatTurn, RiskLevel, Role, TextMessage
from src.webhook.command import parse_command
from src.webhook.models import RelayOutcome, RelayStatus

if TYPE_CHECKING:
    from src.audit.logger import AuditLogger
    from src.completion.client import CompletionClient
    from src.line.client import LineClient
    from src.models import LineMessage, LineSource

logger = logging.getLogger(__name__)

FALLBACK_REPLY_TEXT = "Sorry, I encountered an error processing your request."


class CommandRelay:
    """Turns a recognized command into a completion and a single reply."""

    def __init__(
        self,
        completion_client: CompletionClient,
        line_client: LineClient,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._completion = completion_client
        self._line = line_client
        self._audit = audit_logger

    async def handle_message(
        self,
        message: LineMessage,
        reply_token: str,
        source: LineSource | None = None,
    ) -> RelayOutcome:
        """Relay ``message`` if it is a command; otherwise do nothing."""
        payload = parse_command(message)
        if payload is None:
            return RelayOutcome.ignored()
        return await self.relay(payload, reply_token, source)

    async def relay(
        self,
        payload: str,
        reply_token: str,
        source: LineSource | None = None,
    ) -> RelayOutcome:
        source_id = source.id if source else None
        history = [ChatTurn(role=Role.USER, content=payload)]

        status = RelayStatus.REPLIED
        try:
            text = await self._completion.complete(history)
        except CompletionError as exc:
            logger.warning("Completion failed for %s: %s", source_id or "unknown source", exc)
            self._log(
                AuditEventType.COMPLETION_FAILED, "complete", "fallback", source_id,
                {"error": str(exc), "status_code": exc.status_code},
            )
            status = RelayStatus.FALLBACK
            text = FALLBACK_REPLY_TEXT
        except Exception as exc:
            logger.exception("Unexpected completion failure for %s", source_id or "unknown source")
            self._log(
                AuditEventType.COMPLETION_FAILED, "complete", "fallback", source_id,
                {"error": str(exc), "status_code": None},
            )
            status = RelayStatus.FALLBACK
            text = FALLBACK_REPLY_TEXT

        if len(text) > MAX_TEXT_LENGTH:
            text = text[:MAX_TEXT_LENGTH]

        # The reply token is consumed by the first attempt, so a failed reply
        # is reported and never retried or replaced by the fallback.
        try:
            await self._line.reply(reply_token, [TextMessage(text=text)])
        except LineAPIError as exc:
            logger.warning("Reply to %s failed: %s", source_id or "unknown source", exc)
            self._log(
                AuditEventType.REPLY_FAILED, "reply", "failure", source_id,
                {"error": str(exc), "status_code": exc.status_code},
            )
            return RelayOutcome(status=RelayStatus.FAILED, error=str(exc))
        except Exception as exc:
            logger.exception("Unexpected reply failure for %s", source_id or "unknown source")
            self._log(
                AuditEventType.REPLY_FAILED, "reply", "failure", source_id,
                {"error": str(exc), "status_code": None},
            )
            return RelayOutcome(status=RelayStatus.FAILED, error=str(exc))

        self._log(
            AuditEventType.COMMAND_RELAYED, "reply", status.value, source_id,
            {"prompt_length": len(payload), "reply_length": len(text)},
        )
        return RelayOutcome(status=status, reply_text=text)

    def _log(
        self,
        event_type: AuditEventType,
        action: str,
        result: str,
        source_id: str | None,
        details: dict[str, object],
    ) -> None:
        if not self._audit:
            return
        self._audit.log(AuditEvent(
            event_type=event_type,
            source_id=source_id,
            action=action,
            result=result,
            risk_level=_risk_for(result),
            details=details,
        ))


def _risk_for(result: str) -> RiskLevel:
    if result == "failure":
        return RiskLevel.MEDIUM
    if result == "fallback":
        return RiskLevel.LOW
    return RiskLevel.INFO
