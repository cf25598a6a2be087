"""Shared fixtures: SQLite-backed repository, fake OpenAI client and mocked HTTP providers."""

import asyncio
import json
from types import SimpleNamespace

import httpx
import pytest

from database import DatabaseManager, EntryRepository, Owner, init_database
from orchestrator.pipeline import CatalogPipeline
from shared.config import ServiceSettings

from .factories import EMBEDDING_DIMENSIONS, UPLOADED_URL, build_providers, entry_json


class FakeOpenAI:
    """Stands in for the OpenAI client; vision calls carry a content list."""

    def __init__(self):
        self.vision_text = (
            "A golden retriever sitting on grass. It is a friendly, medium-sized "
            "dog breed known for its golden coat."
        )
        self.entry_text = entry_json()
        self.embedding = [0.1] * EMBEDDING_DIMENSIONS
        self.vision_error = None
        self.embedding_error = None
        self.calls = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._chat))
        self.embeddings = SimpleNamespace(create=self._embed)
        self.models = SimpleNamespace(list=lambda: [])

    @staticmethod
    def _is_vision(kwargs) -> bool:
        return isinstance(kwargs["messages"][0]["content"], list)

    def _chat(self, **kwargs):
        self.calls.append(("chat", kwargs))
        is_vision = self._is_vision(kwargs)
        if is_vision and self.vision_error:
            raise self.vision_error
        text = self.vision_text if is_vision else self.entry_text
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=text))]
        )

    def _embed(self, **kwargs):
        self.calls.append(("embed", kwargs))
        if self.embedding_error:
            raise self.embedding_error
        return SimpleNamespace(data=[SimpleNamespace(embedding=self.embedding)])

    @property
    def vision_calls(self) -> list:
        return [c for kind, c in self.calls if kind == "chat" and self._is_vision(c)]

    @property
    def entry_calls(self) -> list:
        return [c for kind, c in self.calls if kind == "chat" and not self._is_vision(c)]


class FakeProviderBackend:
    """Canned Cloudinary and FakeYou responses behind httpx.MockTransport."""

    def __init__(self):
        self.upload_status = 200
        self.voice_delay = 0.0
        self.voice_status_code = 200
        self.job_state = {"status": "pending", "maybe_public_bucket_wav_audio_path": None}
        self.requests = []
        self._job_counter = 0

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.url.host == "api.cloudinary.com":
            if path.endswith("/image/upload"):
                if self.upload_status != 200:
                    return httpx.Response(
                        self.upload_status, json={"error": {"message": "rejected"}}
                    )
                return httpx.Response(200, json={"secure_url": UPLOADED_URL})
            if path.endswith("/ping"):
                return httpx.Response(200, json={"status": "ok"})

        if request.url.host == "api.fakeyou.com":
            if self.voice_delay:
                await asyncio.sleep(self.voice_delay)
            if self.voice_status_code != 200:
                return httpx.Response(self.voice_status_code, json={"success": False})
            if path == "/login":
                return httpx.Response(
                    200,
                    json={"success": True},
                    headers={"set-cookie": "session=test-session; Path=/"},
                )
            if path == "/tts/inference":
                self._job_counter += 1
                return httpx.Response(
                    200,
                    json={"success": True, "inference_job_token": f"jinf_{self._job_counter}"},
                )
            if path.startswith("/tts/job/"):
                return httpx.Response(
                    200,
                    json={
                        "success": True,
                        "state": {"job_token": path.rsplit("/", 1)[-1], **self.job_state},
                    },
                )

        return httpx.Response(404, json={"error": "not found"})

    @property
    def uploads(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/image/upload")]

    @property
    def submissions(self) -> list[dict]:
        return [
            json.loads(r.content) for r in self.requests if r.url.path == "/tts/inference"
        ]


@pytest.fixture
def settings(tmp_path) -> ServiceSettings:
    return ServiceSettings(
        log_level="DEBUG",
        log_format="text",
        debug=True,
        environment="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}",
        embedding_dimensions=EMBEDDING_DIMENSIONS,
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key",
        cloudinary_api_secret="secret",
        fakeyou_username="user",
        fakeyou_password="pass",
        voice_timeout_seconds=0.5,
    )


@pytest.fixture
def backend() -> FakeProviderBackend:
    return FakeProviderBackend()


@pytest.fixture
def openai_client() -> FakeOpenAI:
    return FakeOpenAI()


@pytest.fixture
async def providers(settings, backend, openai_client):
    providers = build_providers(settings, backend, openai_client)
    yield providers
    await providers.aclose()


@pytest.fixture
async def database(settings):
    db = await init_database(settings.database_url)
    yield db
    await db.close()


@pytest.fixture
def repository(database) -> EntryRepository:
    return EntryRepository(database)


@pytest.fixture
def pipeline(providers, repository) -> CatalogPipeline:
    return CatalogPipeline.from_providers(providers, repository)


@pytest.fixture
def make_owner(repository):
    """Register an owner, as the identity layer would."""

    async def _make_owner(subject: str, name: str = "Ash", avatar: str | None = None) -> Owner:
        return await repository.create_owner(subject, name=name, avatar=avatar)

    return _make_owner


@pytest.fixture
def uninitialized_database(settings) -> DatabaseManager:
    return DatabaseManager(settings.database_url)
