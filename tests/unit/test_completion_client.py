"""Tests for the completion backend client."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from src.completion.client import CompletionClient, CompletionError, has_image
from src.config import CompletionConfig
from src.models import ChatTurn, CompletionOptions, ContentPart, ImageURL, Role
from tests.conftest import make_completion_body, make_http_client, make_http_response


def _user(content: str | list[ContentPart]) -> ChatTurn:
    return ChatTurn(role=Role.USER, content=content)


def _image_turn(url: str = "https://img.test/cat.png") -> ChatTurn:
    return _user([
        ContentPart(type="text", text="what is this?"),
        ContentPart(type="image_url", image_url=ImageURL(url=url)),
    ])


class TestHasImage:
    def test_plain_text_history(self) -> None:
        assert has_image([_user("hello"), ChatTurn(role=Role.ASSISTANT, content="hi")]) is False

    def test_structured_text_only(self) -> None:
        assert has_image([_user([ContentPart(type="text", text="hi")])]) is False

    def test_image_in_any_turn(self) -> None:
        assert has_image([_user("hello"), _image_turn()]) is True

    def test_empty_history(self) -> None:
        assert has_image([]) is False


class TestBuildCompletionBody:
    def test_defaults_from_config(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        body = client.build_completion_body([_user("hello")])
        assert body == {
            "model": "text-model",
            "messages": [{"role": "user", "content": "hello"}],
            "temperature": 0.5,
            "max_tokens": 100,
            "frequency_penalty": 0.1,
            "presence_penalty": 0.2,
        }

    def test_options_override_defaults(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        opts = CompletionOptions(model="other", temperature=0.0, max_tokens=5)
        body = client.build_completion_body([_user("hello")], opts)
        assert body["model"] == "other"
        assert body["temperature"] == 0.0
        assert body["max_tokens"] == 5
        assert body["presence_penalty"] == 0.2

    def test_image_routes_to_vision_model(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        body = client.build_completion_body([_image_turn()])
        assert body["model"] == "vision-model"

    def test_vision_model_overrides_explicit_model(
        self, completion_config: CompletionConfig,
    ) -> None:
        client = CompletionClient(completion_config)
        body = client.build_completion_body(
            [_image_turn()], CompletionOptions(model="text-only-model"),
        )
        assert body["model"] == "vision-model"

    def test_image_content_serialized(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        body = client.build_completion_body([_image_turn("https://img.test/a.png")])
        assert body["messages"][0]["content"] == [
            {"type": "text", "text": "what is this?"},
            {"type": "image_url", "image_url": {"url": "https://img.test/a.png"}},
        ]


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_generated_content(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body=make_completion_body("world"))

        with patch("src.completion.client.httpx.AsyncClient", return_value=http) as mock_cls:
            result = await client.complete([_user("hello")])

        assert result == "world"
        mock_cls.assert_called_once_with(timeout=completion_config.timeout)
        call = http.post.call_args
        assert call[0][0] == "https://llm.test/v1/chat/completions"
        assert call[1]["headers"]["Authorization"] == "Bearer sk-test"
        assert call[1]["json"]["messages"] == [{"role": "user", "content": "hello"}]

    @pytest.mark.asyncio
    async def test_vision_model_sent_on_the_wire(
        self, completion_config: CompletionConfig,
    ) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body=make_completion_body())

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            await client.complete([_image_turn()], CompletionOptions(model="text-model"))

        assert http.post.call_args[1]["json"]["model"] == "vision-model"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        httpx.ConnectError("connection refused"),
        httpx.ReadTimeout("timed out"),
    ])
    async def test_transport_error_raises(
        self, completion_config: CompletionConfig, error: Exception,
    ) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.side_effect = error

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            with pytest.raises(CompletionError) as exc_info:
                await client.complete([_user("hello")])

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_error_status_uses_backend_message(
        self, completion_config: CompletionConfig,
    ) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(
            status_code=401,
            json_body={"error": {"message": "Incorrect API key provided", "type": "auth"}},
        )

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            with pytest.raises(CompletionError) as exc_info:
                await client.complete([_user("hello")])

        assert str(exc_info.value) == "Incorrect API key provided"
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_error_status_without_json(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(status_code=502)

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            with pytest.raises(CompletionError, match="502"):
                await client.complete([_user("hello")])

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": [{"message": {"content": None}}]},
        {"choices": [{"message": {"content": ""}}]},
        {"unexpected": True},
        ["not", "an", "object"],
    ])
    async def test_malformed_response_raises(
        self, completion_config: CompletionConfig, body: object,
    ) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body=body)

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            with pytest.raises(CompletionError):
                await client.complete([_user("hello")])

    @pytest.mark.asyncio
    async def test_non_json_success_raises(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(status_code=200)

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            with pytest.raises(CompletionError, match="non-JSON"):
                await client.complete([_user("hello")])


class TestCreateImage:
    @pytest.mark.asyncio
    async def test_returns_urls(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body={
            "data": [{"url": "https://img.test/1.png"}, {"url": "https://img.test/2.png"}],
        })

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            urls = await client.create_image("a cat", n=2)

        assert urls == ["https://img.test/1.png", "https://img.test/2.png"]
        call = http.post.call_args
        assert call[0][0] == "https://llm.test/v1/images/generations"
        assert call[1]["json"] == {
            "model": "dall-e-3",
            "prompt": "a cat",
            "size": "1024x1024",
            "quality": "standard",
            "n": 2,
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("size", ["256x256", "512x512"])
    async def test_dall_e_3_small_sizes_bumped(
        self, completion_config: CompletionConfig, size: str,
    ) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body={"data": []})

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            await client.create_image("a cat", model="dall-e-3", size=size)

        assert http.post.call_args[1]["json"]["size"] == "1024x1024"

    @pytest.mark.asyncio
    async def test_other_models_keep_small_sizes(
        self, completion_config: CompletionConfig,
    ) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body={"data": []})

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            await client.create_image("a cat", model="dall-e-2", size="256x256")

        assert http.post.call_args[1]["json"]["size"] == "256x256"

    @pytest.mark.asyncio
    async def test_malformed_response_raises(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body={"data": [{"b64_json": "..."}]})

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            with pytest.raises(CompletionError):
                await client.create_image("a cat")


class TestTranscribe:
    @pytest.mark.asyncio
    async def test_sends_multipart_and_returns_text(
        self, completion_config: CompletionConfig,
    ) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body={"text": "hello there"})

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            text = await client.transcribe(b"\x00\x01", "voice.m4a")

        assert text == "hello there"
        call = http.post.call_args
        assert call[0][0] == "https://llm.test/v1/audio/transcriptions"
        assert call[1]["files"] == {"file": ("voice.m4a", b"\x00\x01")}
        assert call[1]["data"] == {"model": "whisper-1"}

    @pytest.mark.asyncio
    async def test_missing_text_raises(self, completion_config: CompletionConfig) -> None:
        client = CompletionClient(completion_config)
        http = make_http_client()
        http.post.return_value = make_http_response(json_body={})

        with patch("src.completion.client.httpx.AsyncClient", return_value=http):
            with pytest.raises(CompletionError):
                await client.transcribe(b"", "voice.m4a")
