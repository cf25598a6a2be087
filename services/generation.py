"""
Entry and embedding generators.

Both consume the vision description. A failure in either is fatal to the
request: an entry cannot be stored without attributes or a vector.
"""

import asyncio
import json
import re
import time
from uuid import uuid4

from loguru import logger
from pydantic import ValidationError

from shared.exceptions import EmbeddingError, EntryParseError
from shared.schemas import StructuredAttributes

CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences models like to wrap JSON in."""
    return CODE_FENCE.sub("", text).strip()


class EntryGenerator:
    """Derives structured attributes from a description."""

    def __init__(self, openai_client, model: str, prompt: str):
        self.openai_client = openai_client
        self.model = model
        self.prompt = prompt

    async def generate(self, description: str, request_id: str) -> StructuredAttributes:
        """
        Generate structured attributes for a described subject.

        Args:
            description: Non-sentinel vision description
            request_id: Request identifier for logging

        Returns:
            Parsed attributes with a fresh id and the source description

        Raises:
            EntryParseError: If the model output is not a valid JSON object
        """
        if not self.openai_client:
            raise EntryParseError("Entry model not configured")

        start_time = time.time()

        response = await asyncio.to_thread(
            self.openai_client.chat.completions.create,
            model=self.model,
            messages=[
                {"role": "system", "content": self.prompt},
                {"role": "user", "content": f"Description: {description}"},
            ],
            max_tokens=500,
            temperature=0.1,
            response_format={"type": "json_object"},
        )
        cleaned = strip_code_fences(response.choices[0].message.content or "")

        try:
            data = json.loads(cleaned)
        except json.JSONDecodeError as e:
            logger.error(
                "Invalid JSON response from entry model",
                request_id=request_id,
                error=str(e),
            )
            raise EntryParseError(f"Entry model returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise EntryParseError("Entry model did not return a JSON object")

        data["id"] = uuid4()
        data["description"] = description

        try:
            attributes = StructuredAttributes.model_validate(data)
        except ValidationError as e:
            raise EntryParseError(f"Entry model returned unusable fields: {e}") from e

        logger.info(
            "Entry attributes generated",
            request_id=request_id,
            object=attributes.object,
            type=attributes.type,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return attributes


class EmbeddingGenerator:
    """Embeds a description into a fixed-length vector."""

    def __init__(self, openai_client, model: str, dimensions: int):
        self.openai_client = openai_client
        self.model = model
        self.dimensions = dimensions

    async def embed(self, description: str, request_id: str) -> list[float]:
        if not self.openai_client:
            raise EmbeddingError("Embedding model not configured")

        response = await asyncio.to_thread(
            self.openai_client.embeddings.create,
            model=self.model,
            input=description,
        )
        vector = [float(v) for v in response.data[0].embedding]

        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Expected {self.dimensions} dimensions, got {len(vector)}"
            )

        logger.debug("Description embedded", request_id=request_id, dimensions=len(vector))
        return vector
