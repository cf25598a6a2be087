"""
Construction of external provider clients.

Every provider client is built once at startup from the settings object and
handed to the pipeline by reference.
"""

import asyncio
from pathlib import Path
from typing import Any

import httpx
import yaml
from loguru import logger
from openai import OpenAI

from shared.config import ServiceSettings
from shared.schemas import ProviderProbe

from .archive import CloudinaryArchiver
from .generation import EmbeddingGenerator, EntryGenerator
from .vision import VisionDescriber
from .voice import FakeYouClient, VoiceSynthesizer

PROMPTS_PATH = Path(__file__).parent / "prompts.yml"


def load_prompts(path: Path = PROMPTS_PATH) -> dict[str, str]:
    """Load model prompts from YAML."""
    with open(path, "r", encoding="utf-8") as f:
        prompts = yaml.safe_load(f)

    missing = {"vision", "entry"} - set(prompts or {})
    if missing:
        raise ValueError(f"Prompt file {path} is missing: {sorted(missing)}")

    logger.info("Prompts loaded", prompt_file=str(path), prompts=sorted(prompts))
    return prompts


class ProviderClients:
    """The configured set of external provider clients."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        openai_client: Any,
        describer: VisionDescriber,
        entry_generator: EntryGenerator,
        embedder: EmbeddingGenerator,
        archiver: CloudinaryArchiver,
        voice: VoiceSynthesizer,
    ):
        self.http_client = http_client
        self.openai_client = openai_client
        self.describer = describer
        self.entry_generator = entry_generator
        self.embedder = embedder
        self.archiver = archiver
        self.voice = voice

    @classmethod
    def from_settings(
        cls,
        settings: ServiceSettings,
        http_client: httpx.AsyncClient | None = None,
        openai_client: Any = None,
    ) -> "ProviderClients":
        """Build all provider clients from settings."""
        prompts = load_prompts()

        if http_client is None:
            http_client = httpx.AsyncClient(
                timeout=settings.service_request_timeout,
                limits=httpx.Limits(
                    max_connections=settings.max_concurrent_requests,
                    max_keepalive_connections=10,
                ),
            )

        if openai_client is None:
            if settings.openai_api_key:
                openai_client = OpenAI(api_key=settings.openai_api_key)
                logger.info("OpenAI client initialized successfully")
            else:
                logger.warning("OPENAI_API_KEY not configured")

        return cls(
            http_client=http_client,
            openai_client=openai_client,
            describer=VisionDescriber(
                openai_client, settings.vision_model, prompts["vision"]
            ),
            entry_generator=EntryGenerator(
                openai_client, settings.entry_model, prompts["entry"]
            ),
            embedder=EmbeddingGenerator(
                openai_client, settings.embedding_model, settings.embedding_dimensions
            ),
            archiver=CloudinaryArchiver(
                http_client,
                settings.cloudinary_cloud_name,
                settings.cloudinary_api_key,
                settings.cloudinary_api_secret,
                folder=settings.cloudinary_folder,
                max_size_mb=settings.max_image_size_mb,
            ),
            voice=VoiceSynthesizer(
                FakeYouClient(
                    http_client,
                    settings.fakeyou_username,
                    settings.fakeyou_password,
                    settings.fakeyou_model_token,
                ),
                timeout_seconds=settings.voice_timeout_seconds,
            ),
        )

    async def probe(self) -> dict[str, ProviderProbe]:
        """Check connectivity to every provider without raising."""
        results = {}

        try:
            if not self.openai_client:
                raise ValueError("OPENAI_API_KEY not configured")
            await asyncio.to_thread(self.openai_client.models.list)
            results["openai"] = ProviderProbe(status="success", message="Connected")
        except Exception as e:
            results["openai"] = ProviderProbe(status="error", message=str(e))

        try:
            if not self.voice.provider.configured:
                raise ValueError("FakeYou credentials not configured")
            await self.voice.provider.login()
            results["fakeyou"] = ProviderProbe(status="success", message="Logged in")
        except Exception as e:
            results["fakeyou"] = ProviderProbe(status="error", message=str(e))

        try:
            await self.archiver.ping()
            results["cloudinary"] = ProviderProbe(status="success", message="Connected")
        except Exception as e:
            results["cloudinary"] = ProviderProbe(status="error", message=str(e))

        for name, result in results.items():
            if result.status != "success":
                logger.warning("Provider probe failed", provider=name, error=result.message)
        return results

    async def aclose(self) -> None:
        await self.http_client.aclose()
