"""
SQLAlchemy database models for catalog entries.

Defines the schema for persisted entries, their owners and the counters
used to hand out sequence numbers.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Owner key stored for captures made without an owner identity.
ANONYMOUS_OWNER_KEY = "anonymous"

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""

    pass


class Owner(Base):
    """External identity on whose behalf entries are created."""

    __tablename__ = "owners"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    provider_account_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    name: Mapped[str | None] = mapped_column(String(255))
    avatar: Mapped[str | None] = mapped_column(Text)
    entry_count: Mapped[int | None] = mapped_column(Integer, default=None)

    def __repr__(self) -> str:
        return f"<Owner(id={self.id}, entry_count={self.entry_count})>"


class EntryRecord(Base):
    """
    Database model for a persisted catalog entry.

    At most one row exists per (object, owner_key); the unique constraint is
    what makes concurrent inserts of the same pair collapse to a single row.
    """

    __tablename__ = "entries"
    __table_args__ = (
        UniqueConstraint("object", "owner_key", name="uq_entries_object_owner"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    no: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Structured attributes
    object: Mapped[str] = mapped_column(String(255), nullable=False)
    species: Mapped[str] = mapped_column(String(255), nullable=False)
    approximate_weight: Mapped[str] = mapped_column(String(255), nullable=False)
    approximate_height: Mapped[str] = mapped_column(String(255), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False)
    height: Mapped[float] = mapped_column(Float, nullable=False)
    hp: Mapped[int] = mapped_column(Integer, nullable=False)
    attack: Mapped[int] = mapped_column(Integer, nullable=False)
    defense: Mapped[int] = mapped_column(Integer, nullable=False)
    speed: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    image: Mapped[str] = mapped_column(Text, nullable=False)
    embedding: Mapped[list] = mapped_column(JSONType, nullable=False)

    # Voice fields, refreshed by the voice-status flow
    inference_job_token: Mapped[str | None] = mapped_column(String(255))
    voice_status: Mapped[str | None] = mapped_column(String(32))
    voice_url: Mapped[str | None] = mapped_column(Text)

    # Owner fields
    owner_key: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("owners.id"), index=True
    )
    user_name: Mapped[str | None] = mapped_column(String(255))
    user_avatar: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation of a catalog entry."""
        return f"<EntryRecord(id={self.id}, no={self.no}, object={self.object!r})>"

    def to_dict(self) -> dict:
        """Convert model to a dictionary keyed like the Entry schema."""
        return {
            "id": self.id,
            "no": self.no,
            "object": self.object,
            "species": self.species,
            "approximate_weight": self.approximate_weight,
            "approximate_height": self.approximate_height,
            "weight": self.weight,
            "height": self.height,
            "hp": self.hp,
            "attack": self.attack,
            "defense": self.defense,
            "speed": self.speed,
            "type": self.type,
            "description": self.description,
            "image": self.image,
            "embedding": self.embedding,
            "inference_job_token": self.inference_job_token,
            "voice_status": self.voice_status,
            "voice_url": self.voice_url,
            "user_id": self.user_id,
            "user_name": self.user_name,
            "user_avatar": self.user_avatar,
            "created_at": self.created_at,
        }


class SequenceCounter(Base):
    """Named monotonically increasing counter."""

    __tablename__ = "sequence_counters"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
