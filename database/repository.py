"""
Repository pattern for catalog database operations.

Hands out sequence numbers and writes deduplicated entries. Both writes are
single atomic statements so that concurrent requests cannot allocate the same
number or insert the same (object, owner) pair twice.
"""

import uuid
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import desc, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from shared.schemas import Entry, EntryType, VoiceStatus

from .models import ANONYMOUS_OWNER_KEY, EntryRecord, Owner, SequenceCounter
from .session import DatabaseManager

ENTRY_SEQUENCE = "entries"


class EntryRepository:
    """Repository for catalog entry database operations."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def _insert(self, table):
        """Dialect-specific INSERT supporting ON CONFLICT clauses."""
        if self.db.dialect_name == "postgresql":
            return postgresql.insert(table)
        if self.db.dialect_name == "sqlite":
            return sqlite.insert(table)
        raise NotImplementedError(
            f"Unsupported database dialect: {self.db.dialect_name}"
        )

    async def next_sequence_number(self) -> int:
        """
        Allocate the next entry sequence number.

        The counter row is seeded with ``max(no) + 1`` on first use and
        incremented atomically afterwards.

        Returns:
            The allocated sequence number
        """
        try:
            async with self.db.get_session() as session:
                seed = select(
                    func.coalesce(func.max(EntryRecord.no), 0) + 1
                ).scalar_subquery()
                stmt = (
                    self._insert(SequenceCounter)
                    .values(name=ENTRY_SEQUENCE, value=seed)
                    .on_conflict_do_update(
                        index_elements=["name"],
                        set_={"value": SequenceCounter.value + 1},
                    )
                    .returning(SequenceCounter.value)
                )
                result = await session.execute(stmt)
                number = result.scalar_one()

                logger.debug("Allocated sequence number", no=number)
                return number

        except Exception as e:
            logger.error("Failed to allocate sequence number", error=str(e))
            raise

    async def _resolve_owner(
        self, session: AsyncSession, owner_subject: Optional[str]
    ) -> Optional[Owner]:
        if not owner_subject:
            return None
        stmt = select(Owner).where(Owner.provider_account_id == owner_subject)
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    def _entry_values(entry: Entry, owner: Optional[Owner]) -> dict:
        now = datetime.utcnow()
        voice_status = VoiceStatus(entry.voice_status).value if entry.voice_status else None
        return {
            "id": entry.id,
            "no": entry.no,
            "object": entry.object,
            "species": entry.species,
            "approximate_weight": entry.approximate_weight,
            "approximate_height": entry.approximate_height,
            "weight": entry.weight,
            "height": entry.height,
            "hp": entry.hp,
            "attack": entry.attack,
            "defense": entry.defense,
            "speed": entry.speed,
            "type": EntryType.coerce(entry.type).value,
            "description": entry.description,
            "image": entry.image,
            "embedding": entry.embedding,
            "inference_job_token": entry.inference_job_token,
            "voice_status": voice_status,
            "voice_url": entry.voice_url,
            "owner_key": str(owner.id) if owner else ANONYMOUS_OWNER_KEY,
            "user_id": owner.id if owner else None,
            "user_name": owner.name if owner else None,
            "user_avatar": owner.avatar if owner else None,
            "created_at": now,
            "updated_at": now,
        }

    async def persist_entry(
        self, entry: Entry, owner_subject: Optional[str] = None
    ) -> tuple[Entry, bool]:
        """
        Store an entry unless one already exists for the same object and owner.

        Args:
            entry: Fully assembled candidate entry
            owner_subject: Verified identity subject, None for anonymous captures

        Returns:
            Tuple of (persisted entry, whether it was newly created). An
            existing entry is returned unchanged and the owner's counter is
            left alone.
        """
        try:
            async with self.db.get_session() as session:
                owner = await self._resolve_owner(session, owner_subject)
                values = self._entry_values(entry, owner)

                stmt = (
                    self._insert(EntryRecord)
                    .values(**values)
                    .on_conflict_do_nothing(index_elements=["object", "owner_key"])
                    .returning(EntryRecord.id)
                )
                inserted_id = (await session.execute(stmt)).scalar_one_or_none()

                if inserted_id is None:
                    stmt = select(EntryRecord).where(
                        EntryRecord.object == values["object"],
                        EntryRecord.owner_key == values["owner_key"],
                    )
                    existing = (await session.execute(stmt)).scalar_one()

                    logger.info(
                        "Entry already exists for object and owner",
                        entry_id=str(existing.id),
                        object=existing.object,
                        owner_key=existing.owner_key,
                    )
                    return Entry.model_validate(existing.to_dict()), False

                if owner is not None:
                    await session.execute(
                        update(Owner)
                        .where(Owner.id == owner.id)
                        .values(entry_count=func.coalesce(Owner.entry_count, 0) + 1)
                    )

                record = await session.get(EntryRecord, inserted_id)

                logger.info(
                    "Entry stored in database",
                    entry_id=str(record.id),
                    no=record.no,
                    owner_key=record.owner_key,
                )
                return Entry.model_validate(record.to_dict()), True

        except Exception as e:
            logger.error(
                "Failed to persist entry",
                entry_id=str(entry.id),
                object=entry.object,
                error=str(e),
            )
            raise

    async def get_entry(self, entry_id: uuid.UUID) -> Optional[Entry]:
        """
        Retrieve an entry by ID.

        Args:
            entry_id: The unique entry identifier

        Returns:
            Entry or None if not found
        """
        try:
            async with self.db.get_session() as session:
                record = await session.get(EntryRecord, entry_id)

                if record is None:
                    logger.warning("Entry not found", entry_id=str(entry_id))
                    return None

                return Entry.model_validate(record.to_dict())

        except Exception as e:
            logger.error(
                "Failed to retrieve entry", entry_id=str(entry_id), error=str(e)
            )
            raise

    async def list_entries(
        self,
        limit: int = 100,
        offset: int = 0,
        owner_id: Optional[uuid.UUID] = None,
    ) -> list[Entry]:
        """
        List entries, highest sequence number first.

        Args:
            limit: Maximum number of entries to return
            offset: Number of entries to skip
            owner_id: Only return entries created by this owner

        Returns:
            List of entries
        """
        try:
            async with self.db.get_session() as session:
                stmt = select(EntryRecord)
                if owner_id is not None:
                    stmt = stmt.where(EntryRecord.user_id == owner_id)
                stmt = stmt.order_by(desc(EntryRecord.no)).limit(limit).offset(offset)

                records = (await session.execute(stmt)).scalars().all()

                logger.debug(
                    "Retrieved entry list",
                    count=len(records),
                    limit=limit,
                    offset=offset,
                )
                return [Entry.model_validate(r.to_dict()) for r in records]

        except Exception as e:
            logger.error(
                "Failed to list entries", limit=limit, offset=offset, error=str(e)
            )
            raise

    async def count_entries(self) -> int:
        """
        Count total number of entries.

        Returns:
            Total count of records
        """
        try:
            async with self.db.get_session() as session:
                stmt = select(func.count(EntryRecord.id))
                count = (await session.execute(stmt)).scalar()

                logger.debug("Counted entries", total=count)
                return count

        except Exception as e:
            logger.error("Failed to count entries", error=str(e))
            raise

    async def get_owner(self, owner_subject: str) -> Optional[Owner]:
        """Look up an owner by identity subject."""
        try:
            async with self.db.get_session() as session:
                return await self._resolve_owner(session, owner_subject)

        except Exception as e:
            logger.error(
                "Failed to resolve owner", owner_subject=owner_subject, error=str(e)
            )
            raise

    async def create_owner(
        self,
        provider_account_id: str,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> Owner:
        """
        Register an owner for a verified identity subject.

        Args:
            provider_account_id: Identity subject from the auth layer
            name: Display name copied onto the owner's entries
            avatar: Avatar URL copied onto the owner's entries

        Returns:
            The created owner, with no entries counted yet
        """
        try:
            async with self.db.get_session() as session:
                owner = Owner(
                    provider_account_id=provider_account_id, name=name, avatar=avatar
                )
                session.add(owner)
                await session.flush()

                logger.info(
                    "Owner created",
                    owner_id=str(owner.id),
                    owner_subject=provider_account_id,
                )
                return owner

        except Exception as e:
            logger.error(
                "Failed to create owner",
                owner_subject=provider_account_id,
                error=str(e),
            )
            raise

    async def update_voice(
        self,
        entry_id: uuid.UUID,
        token: Optional[str],
        status: Optional[VoiceStatus],
        url: Optional[str],
    ) -> bool:
        """
        Refresh the voice fields of a stored entry.

        Returns:
            True if updated, False if the entry does not exist
        """
        try:
            async with self.db.get_session() as session:
                stmt = (
                    update(EntryRecord)
                    .where(EntryRecord.id == entry_id)
                    .values(
                        inference_job_token=token,
                        voice_status=VoiceStatus(status).value if status else None,
                        voice_url=url,
                        updated_at=datetime.utcnow(),
                    )
                )
                result = await session.execute(stmt)
                updated = result.rowcount > 0

                if updated:
                    logger.info("Entry voice fields updated", entry_id=str(entry_id))
                else:
                    logger.warning(
                        "Cannot update voice - entry not found", entry_id=str(entry_id)
                    )
                return updated

        except Exception as e:
            logger.error(
                "Failed to update entry voice", entry_id=str(entry_id), error=str(e)
            )
            raise
