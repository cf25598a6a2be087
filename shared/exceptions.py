"""
Exception taxonomy for the catalog pipeline.

Every fatal, request-aborting failure is a CatalogError carrying the name of
the pipeline stage that produced it. Degraded outcomes (missing voice, the
no-subject sentinel, an existing entry) are not exceptions.
"""


class CatalogError(Exception):
    """Base class for fatal pipeline failures."""

    stage = "pipeline"

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        if stage is not None:
            self.stage = stage


class ImageArchiveError(CatalogError):
    """The captured image could not be uploaded to durable storage."""

    stage = "archive"


class EntryParseError(CatalogError):
    """The entry model did not return a usable JSON object."""

    stage = "entry"


class EmbeddingError(CatalogError):
    """The embedding model failed or returned a malformed vector."""

    stage = "embedding"


class PersistenceError(CatalogError):
    """Reading or writing the document store failed."""

    stage = "persistence"
