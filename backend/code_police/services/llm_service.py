"""LLM service for Google Gemini integration."""

import asyncio
import logging
from typing import TypeVar

from google import genai
from google.genai import types
from pydantic import BaseModel

from code_police.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class LLMService:
    """Service for Google Gemini LLM operations."""

    def __init__(self):
        self.api_key = settings.gemini_api_key
        self.model = settings.gemini_model
        self._client: genai.Client | None = None

    @property
    def client(self) -> genai.Client:
        # Created on first request, not per construction
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        max_tokens: int = 1500,
        temperature: float = 0.3,
        system_prompt: str | None = None,
    ) -> str:
        """Generate text completion using Gemini.

        Args:
            prompt: User prompt
            max_tokens: Maximum tokens to generate
            temperature: Sampling temperature (0-1)
            system_prompt: Optional system prompt

        Returns:
            Generated text
        """
        try:
            config = types.GenerateContentConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
                system_instruction=system_prompt,
            )

            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=prompt,
                config=config,
            )
            return response.text or ""
        except Exception as e:
            logger.error(f"LLM generation failed: {e}")
            raise

    async def generate_structured(
        self,
        prompt: str,
        schema: type[SchemaT],
        temperature: float = 0.0,
        max_tokens: int = 8192,
    ) -> SchemaT:
        """Generate JSON output validated against a pydantic schema.

        Args:
            prompt: User prompt
            schema: Pydantic model describing the expected response
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens to generate

        Returns:
            Parsed schema instance

        Raises:
            pydantic.ValidationError: if the model returns JSON that does not
                match the schema
        """
        try:
            config = types.GenerateContentConfig(
                max_output_tokens=max_tokens,
                temperature=temperature,
                response_mime_type="application/json",
                response_schema=schema,
            )

            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=prompt,
                config=config,
            )
        except Exception as e:
            logger.error(f"LLM structured generation failed: {e}")
            raise

        if isinstance(response.parsed, schema):
            return response.parsed
        return schema.model_validate_json(response.text or "{}")
