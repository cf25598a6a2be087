"""
Orchestrator service for the capture catalog.

Coordinates image archiving, vision description, entry and embedding
generation, optional voice synthesis and deduplicated persistence.
"""

from .app import CatalogOrchestrator, create_app
from .pipeline import CatalogPipeline, PipelineResult, PipelineState

__all__ = [
    "CatalogOrchestrator",
    "CatalogPipeline",
    "PipelineResult",
    "PipelineState",
    "create_app",
]
