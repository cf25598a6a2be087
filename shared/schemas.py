"""
Shared Pydantic schemas for the catalog service.

This module defines all data models used across the service for:
- API request/response structures
- Provider results passed between pipeline stages
- Configuration validation
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, validator

# Reserved description meaning "nothing to catalog in this image".
NO_SUBJECT = "No object identified."

# =============================================================================
# ENUMS
# =============================================================================


class EntryType(str, Enum):
    """Type tag vocabulary for catalog entries."""

    NORMAL = "Normal"
    FIRE = "Fire"
    WATER = "Water"
    GRASS = "Grass"
    ELECTRIC = "Electric"
    ICE = "Ice"
    FIGHTING = "Fighting"
    POISON = "Poison"
    GROUND = "Ground"
    FLYING = "Flying"
    PSYCHIC = "Psychic"
    BUG = "Bug"
    ROCK = "Rock"
    GHOST = "Ghost"
    DRAGON = "Dragon"
    DARK = "Dark"
    STEEL = "Steel"
    FAIRY = "Fairy"
    INANIMATE = "Inanimate"
    UNKNOWN = "Unknown"

    @classmethod
    def coerce(cls, value: Any) -> "EntryType":
        """Case-insensitive lookup; anything outside the vocabulary is Unknown."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.UNKNOWN


class VoiceStatus(str, Enum):
    """Lifecycle of a speech-synthesis job."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETE_SUCCESS = "complete_success"
    FAILED = "failed"


# =============================================================================
# PIPELINE MODELS
# =============================================================================


class StructuredAttributes(BaseModel):
    """Attributes the entry model derives from a description."""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    id: UUID = Field(default_factory=uuid4)
    object: str
    species: str = "Unknown"
    approximate_weight: str = Field("Unknown", alias="approximateWeight")
    approximate_height: str = Field("Unknown", alias="approximateHeight")
    weight: float = 0
    height: float = 0
    hp: int = 0
    attack: int = 0
    defense: int = 0
    speed: int = 0
    type: EntryType = EntryType.UNKNOWN
    description: str = ""

    @validator("type", pre=True)
    def validate_type(cls, v):
        """Map free-form model output onto the type vocabulary."""
        return EntryType.coerce(v)

    @validator("hp", "attack", "defense", "speed", pre=True)
    def round_stats(cls, v):
        """Models occasionally emit fractional stats."""
        if isinstance(v, float):
            return int(round(v))
        return v


class VoiceJob(BaseModel):
    """Reference to a speech-synthesis job."""

    token: str
    status: VoiceStatus = VoiceStatus.PENDING
    url: Optional[str] = None


class Entry(StructuredAttributes):
    """The composite catalog entry assembled by the pipeline."""

    no: Optional[int] = None
    image: Optional[str] = None
    embedding: Optional[list[float]] = None
    inference_job_token: Optional[str] = None
    voice_status: Optional[VoiceStatus] = Field(None, alias="voiceStatus")
    voice_url: Optional[str] = Field(None, alias="voiceUrl")
    user_id: Optional[UUID] = None
    user_name: Optional[str] = Field(None, alias="userName")
    user_avatar: Optional[str] = Field(None, alias="userAvatar")
    created_at: Optional[datetime] = None

    def attach_voice(self, job: Optional[VoiceJob]) -> None:
        """Copy voice fields from a job; a missing job leaves them empty."""
        if job is None:
            return
        self.inference_job_token = job.token
        self.voice_status = job.status
        if job.url:
            self.voice_url = job.url

    def to_response(self, include_embedding: bool = True) -> dict[str, Any]:
        """Serialize with wire (camelCase) names."""
        exclude = None if include_embedding else {"embedding"}
        return self.model_dump(mode="json", by_alias=True, exclude=exclude)


def degraded_entry(description: str) -> Entry:
    """Fixed placeholder entry for images with no identifiable subject."""
    return Entry(
        object="Unidentifiable Object",
        species="Unknown",
        approximate_weight="Unknown",
        approximate_height="Unknown",
        weight=0,
        height=0,
        hp=0,
        attack=0,
        defense=0,
        speed=0,
        type=EntryType.UNKNOWN,
        description=description,
    )


def error_entry(message: str) -> Entry:
    """Placeholder entry returned alongside a failure envelope."""
    return Entry(
        object="Error",
        species="Unknown",
        type=EntryType.UNKNOWN,
        description=message,
    )


# =============================================================================
# API MODELS
# =============================================================================


class Capture(BaseModel):
    """A captured image plus optional fields from an earlier response."""

    model_config = ConfigDict(populate_by_name=True)

    image: str = Field(..., min_length=1)
    description: Optional[str] = None
    inference_job_token: Optional[str] = None
    voice_url: Optional[str] = Field(None, alias="voiceUrl")


class CreateEntryRequest(BaseModel):
    """API request for the create-entry flow."""

    capture: Capture


class CreateEntryResponse(BaseModel):
    """API response for the create-entry flow."""

    success: bool
    entry: dict[str, Any]
    error: Optional[str] = None


class VoiceStatusRequest(BaseModel):
    """API request for the voice-status refresh flow.

    The capture is an entry-like object; unknown keys are echoed back.
    """

    capture: dict[str, Any]


class ProviderProbe(BaseModel):
    """Result of probing one external provider."""

    status: str
    message: Optional[str] = None


# =============================================================================
# HEALTH CHECK MODELS
# =============================================================================


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthCheck(BaseModel):
    """Health check response model."""

    service: str
    status: HealthStatus
    version: str = "1.0.0"
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    details: dict[str, Any] = {}


# =============================================================================
# CONFIGURATION MODELS
# =============================================================================


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str
    max_connections: int = 10
    timeout_seconds: int = 30


class ServiceConfig(BaseModel):
    """Service configuration."""

    host: str = "0.0.0.0"
    port: int
    timeout_seconds: int = 30
    max_concurrent_requests: int = 10


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"

    @validator("level")
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()
