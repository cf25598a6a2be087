"""
Catalog orchestrator service.

Exposes the create-entry pipeline, the voice-status refresh flow, entry
reads and provider diagnostics over HTTP.
"""

import time
import uuid
from typing import Optional

from fastapi import FastAPI, Header, HTTPException, Query
from fastapi.responses import JSONResponse

from database import DatabaseManager, EntryRepository, init_database
from services import ProviderClients
from shared.base_service import BaseService
from shared.config import ServiceSettings
from shared.exceptions import CatalogError
from shared.schemas import (
    CreateEntryRequest,
    CreateEntryResponse,
    VoiceStatusRequest,
    error_entry,
)

from .pipeline import CatalogPipeline
from .voice_status import VoiceStatusRefresher


class CatalogOrchestrator(BaseService):
    """Service wiring provider clients, the database and the pipeline."""

    def __init__(
        self,
        settings: ServiceSettings | None = None,
        providers: ProviderClients | None = None,
        database: DatabaseManager | None = None,
    ):
        self.providers = providers
        self.database = database
        self.repository: EntryRepository | None = None
        self.pipeline: CatalogPipeline | None = None
        self.voice_status: VoiceStatusRefresher | None = None
        super().__init__("orchestrator", "1.0.0", settings=settings)

    def _add_routes(self, app: FastAPI) -> None:
        """Add orchestrator routes."""

        @app.post("/v1/entries", response_model=CreateEntryResponse)
        async def create_entry(
            request: CreateEntryRequest,
            x_owner_subject: Optional[str] = Header(None),
        ):
            """
            Turn a captured image into a persisted catalog entry.

            Fatal failures return HTTP 500 with success=false, an error
            message and a placeholder entry.
            """
            start_time = time.time()
            request_id = str(uuid.uuid4())

            self.logger.info(
                "Create entry request received",
                request_id=request_id,
                authenticated=x_owner_subject is not None,
            )

            try:
                result = await self.pipeline.run(
                    request.capture, x_owner_subject, request_id
                )
            except Exception as e:
                if isinstance(e, CatalogError):
                    message = f"{e.stage} failed: {e}"
                else:
                    message = "Internal error"
                    self.logger.error(
                        "Create entry failed unexpectedly",
                        request_id=request_id,
                        error_type=type(e).__name__,
                        error=str(e),
                    )

                response = CreateEntryResponse(
                    success=False,
                    error=message,
                    entry=error_entry(message).to_response(include_embedding=False),
                )
                return JSONResponse(status_code=500, content=response.model_dump())

            self.logger.info(
                "Create entry request completed",
                request_id=request_id,
                short_circuited=result.short_circuited,
                created=result.created,
                total_time_ms=int((time.time() - start_time) * 1000),
            )
            return CreateEntryResponse(success=True, entry=result.entry.to_response())

        @app.post("/v1/entries/voice-status")
        async def refresh_voice_status(request: VoiceStatusRequest) -> dict:
            """Refresh voice fields on a returned entry. Always answers 200."""
            request_id = str(uuid.uuid4())
            capture = await self.voice_status.refresh(request.capture, request_id)
            return {"capture": capture}

        @app.get("/v1/entries/{entry_id}")
        async def get_entry(entry_id: uuid.UUID) -> dict:
            """Fetch a stored entry without its embedding."""
            entry = await self.repository.get_entry(entry_id)
            if entry is None:
                raise HTTPException(status_code=404, detail="Entry not found")
            return {"entry": entry.to_response(include_embedding=False)}

        @app.get("/v1/entries")
        async def list_entries(
            limit: int = Query(100, ge=1, le=500),
            offset: int = Query(0, ge=0),
            owner: Optional[str] = Query(None, description="Owner identity subject"),
        ) -> dict:
            """List stored entries, newest sequence number first."""
            owner_id = None
            if owner:
                record = await self.repository.get_owner(owner)
                if record is None:
                    return {"entries": [], "limit": limit, "offset": offset, "total": 0}
                owner_id = record.id

            entries = await self.repository.list_entries(limit, offset, owner_id)
            return {
                "entries": [e.to_response(include_embedding=False) for e in entries],
                "limit": limit,
                "offset": offset,
                "total": await self.repository.count_entries(),
            }

        @app.get("/v1/diagnostics/providers")
        async def probe_providers() -> dict:
            """Check connectivity to every external provider."""
            results = {
                name: probe.model_dump()
                for name, probe in (await self.providers.probe()).items()
            }
            database_ok = await self.database.health_check()
            results["database"] = {
                "status": "success" if database_ok else "error",
                "message": "Connected" if database_ok else "Health check failed",
            }
            return {"providers": results}

    async def _initialize_service(self) -> None:
        """Initialize database, provider clients and the pipeline."""
        if self.database is None:
            self.database = await init_database(
                self.settings.get_database_config().url
            )
        else:
            await self.database.create_tables()

        if self.providers is None:
            self.providers = ProviderClients.from_settings(self.settings)

        self.repository = EntryRepository(self.database)
        self.pipeline = CatalogPipeline.from_providers(self.providers, self.repository)
        self.voice_status = VoiceStatusRefresher(self.providers.voice, self.repository)

        for name, configured in self.settings.configured_providers().items():
            self.set_health_detail(f"{name}_configured", configured)

    async def _cleanup_service(self) -> None:
        """Cleanup orchestrator service."""
        if self.providers is not None:
            await self.providers.aclose()
        if self.database is not None:
            await self.database.close()

    async def _check_service_health(self) -> bool:
        """Check database connectivity."""
        if self.database is None:
            return False
        return await self.database.health_check()


def create_app() -> FastAPI:
    """Create the catalog orchestrator FastAPI application."""
    service = CatalogOrchestrator()
    return service.app


# For development/testing
if __name__ == "__main__":
    service = CatalogOrchestrator()
    service.run()
