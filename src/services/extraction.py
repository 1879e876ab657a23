"""Receipt field extraction using a vision model.

Two backends are available: Claude Vision through the Anthropic SDK (the
default) and a local Ollama vision model. Both take the receipt image as a
data URL and either return an ``ExtractedReceipt`` or raise
``ExtractionError``. Neither retries; retrying is the user's call.
"""

import base64
import binascii
import json
import logging
import re
from typing import Any, Protocol

import anthropic
import httpx
from pydantic import ValidationError

from src.config import Settings
from src.exceptions import ExtractionError
from src.schemas.receipt import ExtractedReceipt
from src.services.llm import LLMService
from src.services.llm_prompts import RECEIPT_EXTRACTION_PROMPT, RECEIPT_SCHEMA, RECEIPT_TOOL_NAME

logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/jpeg"

_DATA_URL_RE = re.compile(r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?;base64,(?P<data>.*)$", re.DOTALL)


class ExtractionClient(Protocol):
    """Anything that can turn a receipt image into structured fields."""

    @property
    def is_configured(self) -> bool: ...

    async def extract(self, image: str) -> ExtractedReceipt: ...


def split_data_url(image: str) -> tuple[str, str]:
    """Split a data URL into (media_type, base64 payload).

    A bare base64 string is accepted and assumed to be JPEG.
    """
    match = _DATA_URL_RE.match(image)
    if match is None:
        return DEFAULT_MEDIA_TYPE, image
    return match.group("media_type") or DEFAULT_MEDIA_TYPE, match.group("data")


def to_data_url(image_data: bytes, media_type: str) -> str:
    """Encode raw image bytes as a data URL."""
    return f"data:{media_type};base64,{base64.standard_b64encode(image_data).decode('utf-8')}"


def decode_image(image: str) -> tuple[str, bytes]:
    """Decode a data URL (or bare base64) into (media_type, bytes)."""
    media_type, payload = split_data_url(image)
    try:
        return media_type, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Image is not valid base64: {e}") from e


def parse_extraction_payload(data: Any) -> ExtractedReceipt:
    """Validate a model's reply against the receipt schema."""
    if not isinstance(data, dict):
        raise ExtractionError(f"Expected a JSON object, got {type(data).__name__}")
    try:
        return ExtractedReceipt.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(f"Extraction result is incomplete: {e.error_count()} invalid field(s)") from e


class AnthropicExtractionClient:
    """Extract receipt fields with Claude Vision.

    The output schema is enforced by forcing the model to call a single tool
    whose input schema is the receipt schema.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout: float = 120.0,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self._configured = bool(api_key) or client is not None
        self._client = client
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        """Check if the Anthropic API is configured."""
        return self._configured

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key, timeout=self._timeout)
        return self._client

    async def extract(self, image: str) -> ExtractedReceipt:
        """Extract merchant, amount, currency, date and category from a receipt image.

        Args:
            image: Data URL (or bare base64 JPEG) of the receipt

        Returns:
            The extracted fields

        Raises:
            ExtractionError: on API errors or a reply that does not match the schema
        """
        if not self.is_configured:
            raise ExtractionError("Anthropic API not configured")

        media_type, image_base64 = split_data_url(image)

        try:
            message = await self._get_client().messages.create(
                model=self.model,
                max_tokens=1024,
                tools=[
                    {
                        "name": RECEIPT_TOOL_NAME,
                        "description": "Record the fields read from a receipt.",
                        "input_schema": RECEIPT_SCHEMA,
                    }
                ],
                tool_choice={"type": "tool", "name": RECEIPT_TOOL_NAME},
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "image",
                                "source": {
                                    "type": "base64",
                                    "media_type": media_type,
                                    "data": image_base64,
                                },
                            },
                            {
                                "type": "text",
                                "text": RECEIPT_EXTRACTION_PROMPT,
                            },
                        ],
                    }
                ],
            )
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error during extraction: {e}")
            raise ExtractionError(f"Extraction request failed: {e}") from e

        for block in message.content:
            if block.type == "tool_use" and block.name == RECEIPT_TOOL_NAME:
                return parse_extraction_payload(block.input)

        logger.error(f"Claude reply had no {RECEIPT_TOOL_NAME} call: {message.content}")
        raise ExtractionError("Extraction result was missing")


class OllamaExtractionClient:
    """Extract receipt fields with a local Ollama vision model."""

    def __init__(self, llm: LLMService) -> None:
        self.llm = llm

    @property
    def is_configured(self) -> bool:
        return bool(self.llm.base_url and self.llm.model)

    async def extract(self, image: str) -> ExtractedReceipt:
        _, image_base64 = split_data_url(image)
        try:
            data = await self.llm.generate_json(
                prompt=RECEIPT_EXTRACTION_PROMPT,
                images=[image_base64],
                schema=RECEIPT_SCHEMA,
            )
        except (httpx.HTTPError, json.JSONDecodeError, KeyError, TypeError) as e:
            raise ExtractionError(f"Extraction request failed: {e}") from e
        return parse_extraction_payload(data)


def get_extraction_client(settings: Settings) -> ExtractionClient:
    """Build the extraction client selected by ``EXTRACTION_BACKEND``."""
    if settings.extraction_backend == "ollama":
        return OllamaExtractionClient(
            LLMService(
                base_url=settings.ollama_base_url,
                model=settings.llm_model,
                timeout=settings.extraction_timeout,
            )
        )
    return AnthropicExtractionClient(
        api_key=settings.anthropic_api_key,
        model=settings.extraction_model,
        timeout=settings.extraction_timeout,
    )
