"""
Speech synthesis for catalog entries.

The voice clip is optional. VoiceSynthesizer bounds the whole
login-then-submit sequence by a fixed budget and cancels it when the budget
runs out; any failure yields no voice instead of an error.
"""

import asyncio
import time
from uuid import uuid4

import httpx
from loguru import logger

from shared.schemas import VoiceJob, VoiceStatus

FAKEYOU_API_URL = "https://api.fakeyou.com"
FAKEYOU_AUDIO_URL = "https://storage.googleapis.com/vocodes-public"

# Provider job states mapped onto the voice lifecycle.
JOB_STATUS_MAP = {
    "pending": VoiceStatus.PENDING,
    "started": VoiceStatus.RUNNING,
    "attempt_failed": VoiceStatus.RUNNING,
    "complete_success": VoiceStatus.COMPLETE_SUCCESS,
    "complete_failure": VoiceStatus.FAILED,
    "dead": VoiceStatus.FAILED,
}


class VoiceProviderError(Exception):
    """The speech provider rejected a request."""


class FakeYouClient:
    """Minimal client for the FakeYou text-to-speech API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        username: str | None,
        password: str | None,
        model_token: str,
        base_url: str = FAKEYOU_API_URL,
    ):
        self.client = client
        self.username = username
        self.password = password
        self.model_token = model_token
        self.base_url = base_url

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    async def login(self) -> str:
        """Log in and return the session credential."""
        response = await self.client.post(
            f"{self.base_url}/login",
            json={"username_or_email": self.username, "password": self.password},
        )
        response.raise_for_status()

        if not response.json().get("success"):
            raise VoiceProviderError("Login rejected")

        session = response.cookies.get("session")
        if not session:
            raise VoiceProviderError("Login returned no session")
        return session

    async def submit(self, session: str, text: str, idempotency_token: str) -> str:
        """Submit a synthesis request and return its job token."""
        response = await self.client.post(
            f"{self.base_url}/tts/inference",
            json={
                "tts_model_token": self.model_token,
                "uuid_idempotency_token": idempotency_token,
                "inference_text": text,
            },
            headers={"Cookie": f"session={session}"},
        )
        response.raise_for_status()
        payload = response.json()

        token = payload.get("inference_job_token")
        if not payload.get("success") or not token:
            raise VoiceProviderError("Synthesis request rejected")
        return token

    async def job(self, token: str) -> VoiceJob:
        """Fetch the current state of a synthesis job."""
        response = await self.client.get(f"{self.base_url}/tts/job/{token}")
        response.raise_for_status()
        state = response.json().get("state") or {}

        status = JOB_STATUS_MAP.get(state.get("status"), VoiceStatus.PENDING)
        audio_path = state.get("maybe_public_bucket_wav_audio_path")
        url = None
        if status == VoiceStatus.COMPLETE_SUCCESS and audio_path:
            url = f"{FAKEYOU_AUDIO_URL}{audio_path}"

        return VoiceJob(token=token, status=status, url=url)


class VoiceSynthesizer:
    """Starts voice jobs within a fixed time budget."""

    def __init__(self, provider: FakeYouClient, timeout_seconds: float = 4.5):
        self.provider = provider
        self.timeout_seconds = timeout_seconds

    async def _login_and_submit(self, description: str) -> VoiceJob:
        session = await self.provider.login()
        token = await self.provider.submit(
            session, description, idempotency_token=str(uuid4())
        )
        return VoiceJob(token=token, status=VoiceStatus.PENDING)

    async def synthesize(self, description: str, request_id: str) -> VoiceJob | None:
        """
        Start a voice job for a description.

        Args:
            description: Text to synthesize
            request_id: Request identifier for logging

        Returns:
            The started job, or None if the provider failed or the budget
            ran out (the in-flight call is cancelled in that case)
        """
        if not self.provider.configured:
            logger.debug("Voice provider not configured", request_id=request_id)
            return None

        start_time = time.time()

        try:
            job = await asyncio.wait_for(
                self._login_and_submit(description), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Voice synthesis timed out",
                request_id=request_id,
                timeout_seconds=self.timeout_seconds,
            )
            return None
        except Exception as e:
            logger.warning(
                "Voice synthesis failed",
                request_id=request_id,
                error_type=type(e).__name__,
                error=str(e),
            )
            return None

        logger.info(
            "Voice job started",
            request_id=request_id,
            token=job.token,
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
        return job

    async def poll(self, token: str) -> VoiceJob:
        """Fetch the current state of a voice job."""
        return await self.provider.job(token)
