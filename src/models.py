"""Shared Pydantic data models for the LINE command bot."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class EventType(str, Enum):
    MESSAGE = "message"
    POSTBACK = "postback"


class SourceType(str, Enum):
    USER = "user"
    GROUP = "group"
    ROOM = "room"


class MessageType(str, Enum):
    TEXT = "text"
    STICKER = "sticker"
    AUDIO = "audio"
    IMAGE = "image"
    TEMPLATE = "template"


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class AuditEventType(str, Enum):
    WEBHOOK_RECEIVED = "webhook_received"
    SIGNATURE_INVALID = "signature_invalid"
    COMMAND_RELAYED = "command_relayed"
    COMPLETION_FAILED = "completion_failed"
    REPLY_FAILED = "reply_failed"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"


# --- Inbound webhook models ---
# Event and message types are kept as plain strings: the platform adds new
# kinds (follow, join, video, location, ...) that must parse and be ignored.


class LineSource(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    user_id: str | None = Field(default=None, alias="userId")
    group_id: str | None = Field(default=None, alias="groupId")
    room_id: str | None = Field(default=None, alias="roomId")

    @property
    def id(self) -> str | None:
        """Identifier of the conversation the event came from."""
        return self.group_id or self.room_id or self.user_id


class LineMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = ""
    type: str
    text: str | None = None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str
    source: LineSource | None = None
    reply_token: str | None = Field(default=None, alias="replyToken")
    message: LineMessage | None = None
    timestamp: int | None = None


# --- Completion models ---


class ImageURL(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str


class ContentPart(BaseModel):
    """One element of structured turn content: text or an image reference."""

    model_config = ConfigDict(frozen=True)

    type: Literal["text", "image_url"]
    text: str | None = None
    image_url: ImageURL | None = None


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | list[ContentPart]


class CompletionOptions(BaseModel):
    """Per-call overrides; unset fields fall back to configured defaults."""

    model_config = ConfigDict(frozen=True)

    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = Field(default=None, ge=1)
    frequency_penalty: float | None = None
    presence_penalty: float | None = None


# --- Outbound reply models ---


class TextMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["text"] = "text"
    text: str


class ReplyPayload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reply_token: str = Field(alias="replyToken", min_length=1)
    messages: list[TextMessage] = Field(min_length=1, max_length=5)


class UserProfile(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    user_id: str = Field(alias="userId")
    display_name: str = Field(default="", alias="displayName")
    picture_url: str | None = Field(default=None, alias="pictureUrl")
    status_message: str | None = Field(default=None, alias="statusMessage")
    language: str | None = None


class GroupSummary(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    group_id: str = Field(alias="groupId")
    group_name: str = Field(default="", alias="groupName")
    picture_url: str | None = Field(default=None, alias="pictureUrl")


# --- Audit Models ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_id: str | None = None
    action: str
    result: str  # "success" | "failure" | "fallback" | "rejected"
    risk_level: RiskLevel
    details: dict[str, object] | None = None
