"""Runtime configuration.

Settings are immutable objects built once at process start and passed into
the clients that need them. ``Settings.from_env`` is the only place that
reads the environment.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

LINE_API_BASE_URL = "https://api.line.me"
LINE_DATA_API_BASE_URL = "https://api-data.line.me"
OPENAI_BASE_URL = "https://api.openai.com"

MODEL_GPT_3_5_TURBO = "gpt-3.5-turbo"
MODEL_GPT_4_OMNI = "gpt-4o"
MODEL_WHISPER_1 = "whisper-1"
MODEL_DALL_E_3 = "dall-e-3"

IMAGE_SIZE_256 = "256x256"
IMAGE_SIZE_512 = "512x512"
IMAGE_SIZE_1024 = "1024x1024"


def _require_env(name: str) -> str:
    value = os.environ.get(name, "").strip()
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _env(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


class LineConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    channel_access_token: str = Field(min_length=1)
    channel_secret: str | None = None
    timeout: float = Field(default=9.0, gt=0)
    api_base_url: str = LINE_API_BASE_URL
    data_api_base_url: str = LINE_DATA_API_BASE_URL

    @classmethod
    def from_env(cls) -> LineConfig:
        return cls(
            channel_access_token=_require_env("LINE_CHANNEL_ACCESS_TOKEN"),
            channel_secret=os.environ.get("LINE_CHANNEL_SECRET") or None,
            timeout=float(_env("LINE_TIMEOUT", "9")),
        )


class CompletionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    api_key: str = Field(min_length=1)
    base_url: str = OPENAI_BASE_URL
    timeout: float = Field(default=9.0, gt=0)
    completion_model: str = MODEL_GPT_3_5_TURBO
    vision_model: str = MODEL_GPT_4_OMNI
    temperature: float = 1.0
    max_tokens: int = Field(default=256, ge=1)
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.6
    image_generation_model: str = MODEL_DALL_E_3
    image_generation_size: str = IMAGE_SIZE_1024
    image_generation_quality: str = "standard"
    transcription_model: str = MODEL_WHISPER_1

    @classmethod
    def from_env(cls) -> CompletionConfig:
        return cls(
            api_key=_require_env("OPENAI_API_KEY"),
            base_url=_env("OPENAI_BASE_URL", OPENAI_BASE_URL),
            timeout=float(_env("OPENAI_TIMEOUT", "9")),
            completion_model=_env("OPENAI_COMPLETION_MODEL", MODEL_GPT_3_5_TURBO),
            vision_model=_env("OPENAI_VISION_MODEL", MODEL_GPT_4_OMNI),
            temperature=float(_env("OPENAI_COMPLETION_TEMPERATURE", "1")),
            max_tokens=int(_env("OPENAI_COMPLETION_MAX_TOKENS", "256")),
            frequency_penalty=float(_env("OPENAI_COMPLETION_FREQUENCY_PENALTY", "0")),
            presence_penalty=float(_env("OPENAI_COMPLETION_PRESENCE_PENALTY", "0.6")),
            image_generation_model=_env("OPENAI_IMAGE_GENERATION_MODEL", MODEL_DALL_E_3),
            image_generation_size=_env("OPENAI_IMAGE_GENERATION_SIZE", IMAGE_SIZE_1024),
            image_generation_quality=_env("OPENAI_IMAGE_GENERATION_QUALITY", "standard"),
            transcription_model=_env("OPENAI_TRANSCRIPTION_MODEL", MODEL_WHISPER_1),
        )


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    line: LineConfig
    completion: CompletionConfig
    audit_log_path: str | None = None

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            line=LineConfig.from_env(),
            completion=CompletionConfig.from_env(),
            audit_log_path=os.environ.get("AUDIT_LOG_PATH") or None,
        )
