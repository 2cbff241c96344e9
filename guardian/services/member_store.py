"""
Member profile storage.

The dashboard depends only on the MemberStore protocol; the in-memory
implementation keeps profiles for the lifetime of the process.
"""

import asyncio
from typing import Protocol

import structlog

from guardian.domain.models import MemberProfile, MemberRecord

logger = structlog.get_logger(__name__)


class MemberStore(Protocol):
    """List-all and insert-one operations over member profiles."""

    async def list_all(self, user_id: str | None = None) -> list[MemberRecord]:
        """Return members ordered by creation time, newest first."""
        ...

    async def insert_one(self, profile: MemberProfile, user_id: str) -> MemberRecord:
        """Persist a profile and return the stored record."""
        ...


class InMemoryMemberStore:
    """Process-local member store."""

    def __init__(self, records: list[MemberRecord] | None = None) -> None:
        self._records: list[MemberRecord] = list(records or [])
        self._lock = asyncio.Lock()
        self.logger = logger.bind(component="member_store")

    async def list_all(self, user_id: str | None = None) -> list[MemberRecord]:
        async with self._lock:
            indexed = [
                (position, r)
                for position, r in enumerate(self._records)
                if user_id is None or r.user_id == user_id
            ]
        # Insertion position breaks ties between identical timestamps.
        indexed.sort(key=lambda item: (item[1].created_at, item[0]), reverse=True)
        return [r for _, r in indexed]

    async def insert_one(self, profile: MemberProfile, user_id: str) -> MemberRecord:
        record = MemberRecord(**profile.model_dump(), user_id=user_id)
        async with self._lock:
            self._records.append(record)

        self.logger.info("member_inserted", member_id=record.id, user_id=user_id)
        return record
