"""
Two-phase catalog pipeline.

Phase one archives the image and describes it concurrently. A no-subject
description short-circuits to a fixed placeholder entry. Otherwise phase two
generates attributes, the embedding, an optional voice job and the sequence
number concurrently, and the merged entry is persisted.

States: start -> phase_one_running -> (short_circuited | phase_two_running)
-> persisting -> done, with failed reachable from any state.
"""

import asyncio
import time
import uuid
from enum import Enum
from typing import Optional

from loguru import logger

from shared.exceptions import (
    CatalogError,
    EmbeddingError,
    EntryParseError,
    ImageArchiveError,
    PersistenceError,
)
from shared.schemas import Capture, Entry, NO_SUBJECT, degraded_entry


class PipelineState(str, Enum):
    """Pipeline run states."""

    START = "start"
    PHASE_ONE = "phase_one_running"
    SHORT_CIRCUITED = "short_circuited"
    PHASE_TWO = "phase_two_running"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


def is_no_subject(description: str) -> bool:
    """True for the sentinel, including sentinel-prefixed diagnostics."""
    return NO_SUBJECT in description


def _as_fatal(exc: BaseException, error_class: type[CatalogError]) -> CatalogError:
    if isinstance(exc, CatalogError):
        return exc
    return error_class(f"{type(exc).__name__}: {exc}")


class PipelineResult:
    """Outcome of one pipeline run."""

    def __init__(self, entry: Entry, state: PipelineState, created: bool = False):
        self.entry = entry
        self.state = state
        self.created = created

    @property
    def short_circuited(self) -> bool:
        return self.state == PipelineState.SHORT_CIRCUITED


class CatalogPipeline:
    """Turns one captured image into a persisted catalog entry."""

    def __init__(self, describer, archiver, entry_generator, embedder, voice, repository):
        self.describer = describer
        self.archiver = archiver
        self.entry_generator = entry_generator
        self.embedder = embedder
        self.voice = voice
        self.repository = repository

    @classmethod
    def from_providers(cls, providers, repository) -> "CatalogPipeline":
        return cls(
            describer=providers.describer,
            archiver=providers.archiver,
            entry_generator=providers.entry_generator,
            embedder=providers.embedder,
            voice=providers.voice,
            repository=repository,
        )

    async def run(
        self,
        capture: Capture,
        owner_subject: Optional[str] = None,
        request_id: Optional[str] = None,
    ) -> PipelineResult:
        """
        Run the pipeline for one capture.

        Args:
            capture: The captured image
            owner_subject: Verified owner identity, None for anonymous captures
            request_id: Request identifier for logging

        Returns:
            PipelineResult holding the persisted (or placeholder) entry

        Raises:
            CatalogError: On any fatal failure; the stage is on the exception
        """
        request_id = request_id or str(uuid.uuid4())
        start_time = time.time()
        state = PipelineState.START

        def transition(new_state: PipelineState) -> PipelineState:
            logger.debug(
                "Pipeline state change",
                request_id=request_id,
                from_state=state.value,
                to_state=new_state.value,
            )
            return new_state

        try:
            state = transition(PipelineState.PHASE_ONE)
            image_url, description = await self._phase_one(capture.image, request_id)

            if is_no_subject(description):
                state = transition(PipelineState.SHORT_CIRCUITED)
                logger.info(
                    "No subject identified, returning placeholder entry",
                    request_id=request_id,
                    total_time_ms=int((time.time() - start_time) * 1000),
                )
                return PipelineResult(degraded_entry(description), state)

            state = transition(PipelineState.PHASE_TWO)
            candidate = await self._phase_two(description, image_url, request_id)

            state = transition(PipelineState.PERSISTING)
            try:
                entry, created = await self.repository.persist_entry(
                    candidate, owner_subject
                )
            except Exception as e:
                raise _as_fatal(e, PersistenceError) from e

            state = transition(PipelineState.DONE)
            logger.info(
                "Catalog entry completed",
                request_id=request_id,
                entry_id=str(entry.id),
                no=entry.no,
                created=created,
                has_voice=entry.inference_job_token is not None,
                total_time_ms=int((time.time() - start_time) * 1000),
            )
            return PipelineResult(entry, state, created=created)

        except CatalogError as e:
            logger.error(
                "Catalog pipeline failed",
                request_id=request_id,
                failed_state=state.value,
                stage=e.stage,
                error=str(e),
                total_time_ms=int((time.time() - start_time) * 1000),
            )
            state = transition(PipelineState.FAILED)
            raise

    async def _phase_one(self, image: str, request_id: str) -> tuple[str, str]:
        """Archive and describe the image concurrently."""
        phase_start = time.time()

        image_url, description = await asyncio.gather(
            self.archiver.archive(image, request_id),
            self.describer.describe(image, request_id),
            return_exceptions=True,
        )

        if isinstance(image_url, BaseException):
            raise _as_fatal(image_url, ImageArchiveError) from image_url

        if isinstance(description, BaseException):
            logger.error(
                "Vision describer raised",
                request_id=request_id,
                error=str(description),
            )
            description = f"{NO_SUBJECT} (Error: {type(description).__name__})"

        logger.info(
            "Phase one completed",
            request_id=request_id,
            phase_time_ms=int((time.time() - phase_start) * 1000),
        )
        return image_url, description

    async def _phase_two(self, description: str, image_url: str, request_id: str) -> Entry:
        """Generate every description-derived part and merge them."""
        phase_start = time.time()

        attributes, embedding, voice_job, number = await asyncio.gather(
            self.entry_generator.generate(description, request_id),
            self.embedder.embed(description, request_id),
            self.voice.synthesize(description, request_id),
            self.repository.next_sequence_number(),
            return_exceptions=True,
        )

        for result, error_class in (
            (attributes, EntryParseError),
            (embedding, EmbeddingError),
            (number, PersistenceError),
        ):
            if isinstance(result, BaseException):
                raise _as_fatal(result, error_class) from result

        if isinstance(voice_job, BaseException):
            logger.warning(
                "Voice step raised, continuing without voice",
                request_id=request_id,
                error=str(voice_job),
            )
            voice_job = None

        entry = Entry(
            **attributes.model_dump(),
            embedding=embedding,
            no=number,
            image=image_url,
        )
        entry.attach_voice(voice_job)

        logger.info(
            "Phase two completed",
            request_id=request_id,
            no=number,
            has_voice=voice_job is not None,
            phase_time_ms=int((time.time() - phase_start) * 1000),
        )
        return entry
