"""
Voice-status refresh flow.

Brings the voice fields of a previously returned entry up to date: starts a
voice job when none exists, otherwise polls the existing one. This flow never
fails; errors are logged and the capture is echoed unchanged.
"""

import uuid
from typing import Any, Optional

from loguru import logger

from shared.schemas import VoiceJob, VoiceStatus

from .pipeline import is_no_subject


class VoiceStatusRefresher:
    """Refreshes voice fields on entry-like captures."""

    def __init__(self, voice, repository):
        self.voice = voice
        self.repository = repository

    async def refresh(self, capture: dict[str, Any], request_id: str) -> dict[str, Any]:
        """
        Refresh the voice fields of a capture.

        Args:
            capture: Entry-like object with at least an id and description
            request_id: Request identifier for logging

        Returns:
            The capture with inference_job_token, voiceStatus and voiceUrl
            filled in as available, or the input unchanged on any error
        """
        try:
            return await self._refresh(capture, request_id)
        except Exception as e:
            logger.error(
                "Voice status refresh failed, echoing capture",
                request_id=request_id,
                entry_id=str(capture.get("id")),
                error_type=type(e).__name__,
                error=str(e),
            )
            return capture

    @staticmethod
    def _entry_id(capture: dict[str, Any], request_id: str) -> Optional[uuid.UUID]:
        """Stored entry id of the capture, or None when it cannot be written back."""
        raw = capture.get("id")
        if not raw:
            return None
        try:
            return uuid.UUID(str(raw))
        except ValueError:
            logger.warning(
                "Capture id is not an entry id, skipping write-back",
                request_id=request_id,
                entry_id=str(raw),
            )
            return None

    async def _refresh(self, capture: dict[str, Any], request_id: str) -> dict[str, Any]:
        if capture.get("voiceUrl"):
            return capture

        entry_id = self._entry_id(capture, request_id)

        token = capture.get("inference_job_token")
        job: Optional[VoiceJob]
        if token:
            job = await self.voice.poll(token)
        else:
            description = capture.get("description") or ""
            if not description or is_no_subject(description):
                return capture
            job = await self.voice.synthesize(description, request_id)
            if job is None:
                return capture

        status = VoiceStatus(job.status)
        updated = {
            **capture,
            "inference_job_token": job.token,
            "voiceStatus": status.value,
        }
        if job.url:
            updated["voiceUrl"] = job.url

        if entry_id is not None:
            await self.repository.update_voice(entry_id, job.token, status, job.url)

        logger.info(
            "Voice status refreshed",
            request_id=request_id,
            entry_id=str(entry_id),
            voice_status=status.value,
        )
        return updated
