"""Tests for the voice-status refresh flow."""

import pytest

from orchestrator.voice_status import VoiceStatusRefresher
from services.voice import FAKEYOU_AUDIO_URL
from shared.schemas import NO_SUBJECT, VoiceStatus

from .factories import make_entry


@pytest.fixture
def refresher(providers, repository) -> VoiceStatusRefresher:
    return VoiceStatusRefresher(providers.voice, repository)


async def test_completed_job_fills_voice_url_and_updates_entry(refresher, repository, backend):
    entry, _ = await repository.persist_entry(make_entry(inference_job_token="jinf_3"))
    backend.job_state = {
        "status": "complete_success",
        "maybe_public_bucket_wav_audio_path": "/media/x/fakeyou_jinf_3.wav",
    }
    capture = {"id": str(entry.id), "description": entry.description, "inference_job_token": "jinf_3"}

    refreshed = await refresher.refresh(capture, "req-1")

    assert refreshed["voiceStatus"] == "complete_success"
    assert refreshed["voiceUrl"] == f"{FAKEYOU_AUDIO_URL}/media/x/fakeyou_jinf_3.wav"
    stored = await repository.get_entry(entry.id)
    assert stored.voice_status == VoiceStatus.COMPLETE_SUCCESS
    assert stored.voice_url == refreshed["voiceUrl"]


async def test_missing_token_starts_a_voice_job(refresher, backend):
    capture = {"id": None, "description": "A golden retriever.", "object": "Golden Retriever"}

    refreshed = await refresher.refresh(capture, "req-1")

    assert refreshed["inference_job_token"] == "jinf_1"
    assert refreshed["voiceStatus"] == "pending"
    assert refreshed["object"] == "Golden Retriever"
    assert len(backend.submissions) == 1


async def test_provider_error_echoes_capture_unchanged(refresher, backend):
    backend.voice_status_code = 500
    capture = {"id": "not-a-uuid", "description": "A dog.", "inference_job_token": "jinf_3"}

    assert await refresher.refresh(capture, "req-1") == capture


async def test_unstored_capture_id_keeps_new_job_token(refresher, repository, backend):
    await repository.persist_entry(make_entry())
    capture = {"id": "not-a-uuid", "description": "A golden retriever."}

    refreshed = await refresher.refresh(capture, "req-1")

    assert refreshed["inference_job_token"] == "jinf_1"
    assert refreshed["voiceStatus"] == "pending"
    assert len(backend.submissions) == 1
    [stored] = await repository.list_entries()
    assert stored.inference_job_token is None

    # A second refresh polls the job instead of submitting another one
    again = await refresher.refresh(refreshed, "req-2")

    assert again["inference_job_token"] == "jinf_1"
    assert len(backend.submissions) == 1


async def test_existing_voice_url_is_left_alone(refresher, backend):
    capture = {"id": None, "description": "A dog.", "voiceUrl": "https://audio.example/1.wav"}

    assert await refresher.refresh(capture, "req-1") == capture
    assert backend.requests == []


async def test_sentinel_description_is_not_synthesized(refresher, backend):
    capture = {"id": None, "description": NO_SUBJECT}

    assert await refresher.refresh(capture, "req-1") == capture
    assert backend.requests == []
