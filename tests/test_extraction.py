"""Tests for receipt extraction clients."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anthropic
import httpx
import pytest

from src.config import Settings
from src.exceptions import ExtractionError
from src.services.extraction import (
    AnthropicExtractionClient,
    OllamaExtractionClient,
    decode_image,
    get_extraction_client,
    parse_extraction_payload,
    split_data_url,
    to_data_url,
)
from src.services.llm import LLMService
from src.services.llm_prompts import RECEIPT_SCHEMA, RECEIPT_TOOL_NAME


class TestDataUrls:
    """Tests for image payload helpers."""

    def test_split_data_url(self):
        assert split_data_url("data:image/png;base64,AAAA") == ("image/png", "AAAA")

    def test_bare_base64_defaults_to_jpeg(self):
        assert split_data_url("AAAA") == ("image/jpeg", "AAAA")

    def test_round_trip_bytes(self):
        media_type, data = decode_image(to_data_url(b"\x89PNG", "image/png"))
        assert media_type == "image/png"
        assert data == b"\x89PNG"

    def test_invalid_base64(self):
        with pytest.raises(ValueError):
            decode_image("data:image/png;base64,not base64!")


class TestParseExtractionPayload:
    """Tests for validating model output."""

    def test_optional_fields_may_be_missing(self):
        result = parse_extraction_payload({"merchant": "Cafe Luna", "amount": "12.50", "date": "2024-05-01"})
        assert result.merchant == "Cafe Luna"
        assert result.currency is None
        assert result.category is None

    def test_numeric_amount_is_coerced(self):
        result = parse_extraction_payload({"merchant": "Shop", "amount": 12.5, "date": "2024-05-01"})
        assert result.amount == "12.5"

    def test_missing_required_field(self):
        with pytest.raises(ExtractionError):
            parse_extraction_payload({"merchant": "Shop", "date": "2024-05-01"})

    def test_non_object(self):
        with pytest.raises(ExtractionError):
            parse_extraction_payload(["Shop", "12.50"])


def _tool_message(payload: dict) -> SimpleNamespace:
    return SimpleNamespace(
        content=[SimpleNamespace(type="tool_use", name=RECEIPT_TOOL_NAME, input=payload)]
    )


class TestAnthropicExtractionClient:
    """Tests for the Claude Vision backend."""

    @pytest.mark.asyncio
    async def test_extracts_fields_from_tool_call(self):
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(
            return_value=_tool_message(
                {"merchant": "Cafe Luna", "amount": "12.50", "date": "2024-05-01", "currency": "USD"}
            )
        )
        client = AnthropicExtractionClient(api_key=None, model="test-model", client=mock_client)

        result = await client.extract("data:image/png;base64,AAAA")

        assert result.merchant == "Cafe Luna"
        assert result.currency == "USD"
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["tool_choice"] == {"type": "tool", "name": RECEIPT_TOOL_NAME}
        assert kwargs["tools"][0]["input_schema"] == RECEIPT_SCHEMA
        image_block = kwargs["messages"][0]["content"][0]
        assert image_block["source"] == {"type": "base64", "media_type": "image/png", "data": "AAAA"}

    @pytest.mark.asyncio
    async def test_reply_without_tool_call_fails(self):
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(
            return_value=SimpleNamespace(content=[SimpleNamespace(type="text", text="I can't read this")])
        )
        client = AnthropicExtractionClient(api_key=None, model="test-model", client=mock_client)

        with pytest.raises(ExtractionError):
            await client.extract("AAAA")

    @pytest.mark.asyncio
    async def test_api_error_fails(self):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(side_effect=anthropic.APIConnectionError(request=request))
        client = AnthropicExtractionClient(api_key=None, model="test-model", client=mock_client)

        with pytest.raises(ExtractionError):
            await client.extract("AAAA")

    @pytest.mark.asyncio
    async def test_unconfigured_client_fails(self):
        client = AnthropicExtractionClient(api_key=None, model="test-model")

        assert client.is_configured is False
        with pytest.raises(ExtractionError, match="not configured"):
            await client.extract("AAAA")


class TestOllamaExtractionClient:
    """Tests for the Ollama vision backend."""

    @staticmethod
    def _client(handler) -> OllamaExtractionClient:
        llm = LLMService(
            base_url="http://ollama.test",
            model="llava",
            transport=httpx.MockTransport(handler),
        )
        return OllamaExtractionClient(llm)

    @pytest.mark.asyncio
    async def test_sends_image_and_schema(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            content = '```json\n{"merchant": "Cafe Luna", "amount": "12.50", "date": "2024-05-01"}\n```'
            return httpx.Response(200, json={"message": {"content": content}})

        result = await self._client(handler).extract("data:image/jpeg;base64,BBBB")

        assert result.merchant == "Cafe Luna"
        body = seen[0]
        assert body["model"] == "llava"
        assert body["format"] == RECEIPT_SCHEMA
        assert body["messages"][0]["images"] == ["BBBB"]

    @pytest.mark.asyncio
    async def test_null_message_fails(self):
        """A reply with no message object is an extraction error."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": None})

        with pytest.raises(ExtractionError):
            await self._client(handler).extract("BBBB")

    @pytest.mark.asyncio
    async def test_non_json_reply_fails(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": {"content": "not json"}})

        with pytest.raises(ExtractionError):
            await self._client(handler).extract("BBBB")

    @pytest.mark.asyncio
    async def test_http_error_fails(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "model not loaded"})

        with pytest.raises(ExtractionError):
            await self._client(handler).extract("BBBB")


def test_get_extraction_client_selects_backend():
    """EXTRACTION_BACKEND picks the implementation."""
    ollama = get_extraction_client(Settings(extraction_backend="ollama", llm_model="llava"))
    assert isinstance(ollama, OllamaExtractionClient)
    assert ollama.llm.model == "llava"

    claude = get_extraction_client(Settings(extraction_backend="anthropic", anthropic_api_key="sk-test"))
    assert isinstance(claude, AnthropicExtractionClient)
    assert claude.is_configured
