"""Data models for the webhook reply pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RelayStatus(str, Enum):
    IGNORED = "ignored"  # not a command, nothing sent
    REPLIED = "replied"  # completion text delivered
    FALLBACK = "fallback"  # completion failed, apology delivered
    FAILED = "failed"  # reply delivery failed, nothing delivered


@dataclass
class RelayOutcome:
    """Result of processing one webhook event."""

    status: RelayStatus
    reply_text: str | None = None
    error: str | None = None

    @classmethod
    def ignored(cls) -> RelayOutcome:
        return cls(status=RelayStatus.IGNORED)
