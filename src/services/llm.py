"""LLM service for Ollama integration."""

import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class LLMService:
    """Service for interacting with an Ollama vision model."""

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: float = 120.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout  # vision responses on local hardware are slow
        self._transport = transport

    async def generate(
        self,
        prompt: str,
        images: list[str] | None = None,
        response_format: dict[str, Any] | str | None = None,
        temperature: float = 0.1,
    ) -> str:
        """Generate a response from the LLM.

        Args:
            prompt: User message text
            images: Base64-encoded images attached to the message
            response_format: "json" or a JSON schema the reply must follow
            temperature: Sampling temperature
        """
        message: dict[str, Any] = {"role": "user", "content": prompt}
        if images:
            message["images"] = images

        body: dict[str, Any] = {
            "model": self.model,
            "messages": [message],
            "stream": False,
            "options": {"temperature": temperature},
        }
        if response_format is not None:
            body["format"] = response_format

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(f"{self.base_url}/api/chat", json=body)
            response.raise_for_status()
            data = response.json()
            return data["message"]["content"]

    async def generate_json(
        self,
        prompt: str,
        images: list[str] | None = None,
        schema: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Generate structured JSON response from the LLM."""
        result = ""
        try:
            result = await self.generate(
                prompt=prompt,
                images=images,
                response_format=schema or "json",
            )
            # Clean up response - remove markdown code blocks if present
            result = result.strip()
            if result.startswith("```json"):
                result = result[7:]
            if result.startswith("```"):
                result = result[3:]
            if result.endswith("```"):
                result = result[:-3]
            result = result.strip()

            return json.loads(result)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse LLM response as JSON: {e}")
            logger.warning(f"Raw response: {result}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling Ollama: {e}")
            raise
