"""Audit logger: append-only JSON Lines trail of webhook pipeline outcomes."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from src.models import AuditEvent

logger = logging.getLogger(__name__)


class AuditLogger:
    """Appends one JSON object per event, rotating by file size."""

    def __init__(
        self,
        log_path: str,
        max_bytes: int = 10_485_760,
        backup_count: int = 5,
    ) -> None:
        self.log_path = Path(log_path)
        self._max_bytes = max_bytes
        self._backup_count = backup_count

    @classmethod
    def from_env(cls, log_path: str) -> AuditLogger:
        """Create AuditLogger with rotation limits from environment variables."""
        return cls(
            log_path=log_path,
            max_bytes=int(os.environ.get("AUDIT_LOG_MAX_BYTES", "10485760")),
            backup_count=int(os.environ.get("AUDIT_LOG_BACKUP_COUNT", "5")),
        )

    def _backup(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _maybe_rotate(self) -> None:
        if not self.log_path.exists() or self.log_path.stat().st_size < self._max_bytes:
            return
        if self._backup_count < 1:
            self.log_path.unlink()
            return

        # audit.jsonl.N-1 -> audit.jsonl.N, ..., audit.jsonl -> audit.jsonl.1
        self._backup(self._backup_count).unlink(missing_ok=True)
        for i in range(self._backup_count - 1, 0, -1):
            if self._backup(i).exists():
                self._backup(i).rename(self._backup(i + 1))
        self.log_path.rename(self._backup(1))

    def log(self, event: AuditEvent) -> None:
        """Append ``event``; write failures are logged, never raised to callers."""
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            self._maybe_rotate()
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(event.model_dump_json() + "\n")
        except OSError:
            logger.exception("Failed to write audit event to %s", self.log_path)
