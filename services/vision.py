"""
Vision describer.

Turns a captured image into a short natural-language description using a
multimodal chat model. Always returns a string: unanalyzable images and
provider failures come back as the no-subject sentinel.
"""

import asyncio
import time

from loguru import logger

from shared.images import InvalidImagePayload, decode_data_uri, is_blank_image
from shared.schemas import NO_SUBJECT


class VisionDescriber:
    """Describes the primary subject of an image."""

    def __init__(self, openai_client, model: str, prompt: str):
        self.openai_client = openai_client
        self.model = model
        self.prompt = prompt

    async def _is_unanalyzable(self, image: str, request_id: str) -> bool:
        try:
            _, data = decode_data_uri(image)
            blank = await asyncio.to_thread(is_blank_image, data)
        except InvalidImagePayload as e:
            logger.warning(
                "Image payload cannot be analyzed",
                request_id=request_id,
                error=str(e),
            )
            return True

        if blank:
            logger.info("Image is blank, skipping vision model", request_id=request_id)
        return blank

    async def describe(self, image: str, request_id: str) -> str:
        """
        Describe the primary subject of a captured image.

        Args:
            image: Base64 data URI of the captured image
            request_id: Request identifier for logging

        Returns:
            The description, or a string containing NO_SUBJECT when nothing
            can be identified
        """
        if await self._is_unanalyzable(image, request_id):
            return NO_SUBJECT

        if not self.openai_client:
            logger.error("OpenAI client not initialized", request_id=request_id)
            return f"{NO_SUBJECT} (vision model not configured)"

        start_time = time.time()

        try:
            messages = [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": self.prompt},
                        {"type": "image_url", "image_url": {"url": image}},
                    ],
                }
            ]
            response = await asyncio.to_thread(
                self.openai_client.chat.completions.create,
                model=self.model,
                messages=messages,
                max_tokens=400,
                temperature=0.2,
            )
            text = (response.choices[0].message.content or "").strip()

        except Exception as e:
            logger.error(
                "Vision model call failed",
                request_id=request_id,
                error=str(e),
                processing_time_ms=int((time.time() - start_time) * 1000),
            )
            return f"{NO_SUBJECT} (Error: {type(e).__name__}: {e})"

        if not text:
            logger.warning("Vision model returned no text", request_id=request_id)
            return NO_SUBJECT

        logger.info(
            "Image described",
            request_id=request_id,
            description_length=len(text),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return text
