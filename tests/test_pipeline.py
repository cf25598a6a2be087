"""End-to-end tests for the two-phase catalog pipeline."""

import time

import pytest

from orchestrator.pipeline import PipelineState, is_no_subject
from shared.exceptions import EmbeddingError, EntryParseError, ImageArchiveError
from shared.schemas import NO_SUBJECT, Capture, EntryType, VoiceStatus

from .factories import EMBEDDING_DIMENSIONS, UPLOADED_URL, entry_json, make_image_uri


@pytest.fixture
def capture() -> Capture:
    return Capture(image=make_image_uri())


async def test_creates_and_persists_entry(pipeline, repository, capture, openai_client):
    result = await pipeline.run(capture, request_id="req-1")

    entry = result.entry
    assert result.state == PipelineState.DONE
    assert result.created is True
    assert entry.object == "Golden Retriever"
    assert entry.type == EntryType.NORMAL
    assert entry.no == 1
    assert entry.image == UPLOADED_URL
    assert entry.embedding == [0.1] * EMBEDDING_DIMENSIONS
    assert entry.description == openai_client.vision_text
    assert entry.inference_job_token == "jinf_1"
    assert entry.voice_status == VoiceStatus.PENDING
    assert await repository.count_entries() == 1


async def test_no_subject_short_circuits_without_persisting(
    pipeline, repository, capture, openai_client
):
    openai_client.vision_text = NO_SUBJECT

    result = await pipeline.run(capture)

    entry = result.entry
    assert result.state == PipelineState.SHORT_CIRCUITED
    assert entry.object == "Unidentifiable Object"
    assert entry.species == "Unknown"
    assert entry.type == EntryType.UNKNOWN
    assert (entry.hp, entry.attack, entry.defense, entry.speed) == (0, 0, 0, 0)
    assert entry.inference_job_token is None
    assert entry.voice_url is None
    assert openai_client.entry_calls == []
    assert await repository.count_entries() == 0
    # No sequence number was consumed
    assert await repository.next_sequence_number() == 1


async def test_blank_image_short_circuits_without_vision_call(pipeline, openai_client):
    result = await pipeline.run(Capture(image=make_image_uri(blank=True)))

    assert result.short_circuited
    assert result.entry.description == NO_SUBJECT
    assert openai_client.vision_calls == []


async def test_vision_provider_error_short_circuits(pipeline, capture, openai_client):
    openai_client.vision_error = RuntimeError("model overloaded")

    result = await pipeline.run(capture)

    assert result.short_circuited
    assert is_no_subject(result.entry.description)
    assert "model overloaded" in result.entry.description


async def test_voice_timeout_still_persists_entry(pipeline, repository, capture, backend):
    backend.voice_delay = 5

    start = time.time()
    result = await pipeline.run(capture)
    elapsed = time.time() - start

    assert result.state == PipelineState.DONE
    assert result.entry.inference_job_token is None
    assert result.entry.voice_url is None
    assert result.entry.voice_status is None
    assert elapsed < 3
    stored = await repository.get_entry(result.entry.id)
    assert stored is not None
    assert stored.inference_job_token is None


async def test_voice_failure_still_persists_entry(pipeline, repository, capture, backend):
    backend.voice_status_code = 503

    result = await pipeline.run(capture)

    assert result.state == PipelineState.DONE
    assert result.entry.inference_job_token is None
    assert await repository.count_entries() == 1


async def test_archive_failure_is_fatal(pipeline, repository, capture, backend, openai_client):
    backend.upload_status = 500

    with pytest.raises(ImageArchiveError) as exc_info:
        await pipeline.run(capture)

    assert exc_info.value.stage == "archive"
    assert openai_client.entry_calls == []
    assert await repository.count_entries() == 0


async def test_entry_parse_failure_is_fatal(pipeline, repository, capture, openai_client):
    openai_client.entry_text = "Sure! Here is the entry you asked for."

    with pytest.raises(EntryParseError):
        await pipeline.run(capture)

    assert await repository.count_entries() == 0


async def test_embedding_failure_is_fatal(pipeline, repository, capture, openai_client):
    openai_client.embedding_error = ConnectionError("embedding service down")

    with pytest.raises(EmbeddingError) as exc_info:
        await pipeline.run(capture)

    assert "embedding service down" in str(exc_info.value)
    assert await repository.count_entries() == 0


async def test_repeated_capture_returns_same_entry(pipeline, repository, capture, make_owner):
    await make_owner("github|42")

    first = await pipeline.run(capture, owner_subject="github|42")
    second = await pipeline.run(capture, owner_subject="github|42")

    assert first.created is True
    assert second.created is False
    assert second.entry.id == first.entry.id
    owner = await repository.get_owner("github|42")
    assert owner.entry_count == 1


async def test_each_voice_submission_has_a_fresh_idempotency_token(
    pipeline, capture, backend, openai_client
):
    await pipeline.run(capture)
    openai_client.entry_text = entry_json("Magpie", species="Bird", type="Flying")
    result = await pipeline.run(capture)

    tokens = [s["uuid_idempotency_token"] for s in backend.submissions]
    assert len(tokens) == 2
    assert tokens[0] != tokens[1]
    assert result.entry.no == 2
    assert result.entry.type == EntryType.FLYING
