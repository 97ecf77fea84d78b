"""Command recognition for inbound chat messages."""

from __future__ import annotations

from src.models import LineMessage, MessageType

COMMAND_PREFIX = "Ai "


def parse_command(message: LineMessage) -> str | None:
    """Return the prompt of an ``Ai `` command, or None if not a command.

    The prefix match is exact and case-sensitive. A message consisting of the
    prefix alone is still a command and yields an empty prompt.
    """
    if message.type != MessageType.TEXT or message.text is None:
        return None
    if not message.text.startswith(COMMAND_PREFIX):
        return None
    return message.text[len(COMMAND_PREFIX):].strip()
