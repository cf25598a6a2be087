"""
Service base for the catalog API.

Owns the FastAPI application, the startup/shutdown lifecycle, the fallback
error envelope and the /health route. Subclasses register their routes and
build their dependencies in ``_initialize_service``.
"""

import time
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import ServiceSettings, get_settings
from .logging import get_logger, setup_logging
from .schemas import HealthCheck, HealthStatus


class BaseService(ABC):
    """FastAPI service with a managed lifecycle."""

    def __init__(
        self,
        service_name: str,
        version: str = "1.0.0",
        settings: ServiceSettings | None = None,
    ):
        self.service_name = service_name
        self.version = version
        self.settings = settings if settings is not None else get_settings()

        setup_logging(service_name, self.settings)
        self.logger = get_logger()

        self._started_at: float | None = None
        self._health_details: dict[str, Any] = {}

        self.app = FastAPI(
            title=f"Catalog {service_name.title()}",
            version=version,
            lifespan=self._lifespan,
        )
        self.app.add_exception_handler(Exception, self._unhandled_error)
        self.app.add_api_route(
            "/health", self.health_check, methods=["GET"], response_model=HealthCheck
        )
        self._add_routes(self.app)

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        self.logger.info("Service starting", version=self.version)
        try:
            await self._initialize_service()
        except Exception as e:
            self.logger.error("Service startup failed", error=str(e))
            raise
        self._started_at = time.time()
        self.logger.info("Service started")

        try:
            yield
        finally:
            try:
                await self._cleanup_service()
                self.logger.info("Service stopped")
            except Exception as e:
                self.logger.error("Service shutdown failed", error=str(e))

    async def _unhandled_error(self, request: Request, exc: Exception) -> JSONResponse:
        """Last-resort envelope for errors no route handled."""
        self.logger.error(
            "Unhandled exception",
            path=request.url.path,
            method=request.method,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error"},
        )

    async def health_check(self) -> HealthCheck:
        """Report liveness, uptime and whatever details the service has set."""
        details = {
            "uptime_seconds": time.time() - self._started_at if self._started_at else 0,
            **self._health_details,
        }
        try:
            healthy = self._started_at is not None and await self._check_service_health()
        except Exception as e:
            self.logger.error("Health check failed", error=str(e))
            healthy = False
            details["error"] = str(e)

        return HealthCheck(
            service=self.service_name,
            status=HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            version=self.version,
            details=details,
        )

    def set_health_detail(self, key: str, value: Any) -> None:
        self._health_details[key] = value

    @abstractmethod
    def _add_routes(self, app: FastAPI) -> None:
        """Register the service's routes."""

    @abstractmethod
    async def _initialize_service(self) -> None:
        """Build clients and connections before the first request."""

    @abstractmethod
    async def _cleanup_service(self) -> None:
        """Release clients and connections."""

    async def _check_service_health(self) -> bool:
        return True

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Serve the app with uvicorn."""
        import uvicorn

        service_config = self.settings.get_service_config()
        run_host = host or service_config.host
        run_port = port or service_config.port

        self.logger.info("Starting uvicorn", host=run_host, port=run_port)
        uvicorn.run(
            self.app,
            host=run_host,
            port=run_port,
            log_config=None,  # loguru handles logging
            access_log=False,
        )
