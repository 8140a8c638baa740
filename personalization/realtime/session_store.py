"""In-process store of live behavior profiles.

One profile per identity. Every mutation for an identity is expected to run
while holding that identity's lock (see ``lock``); the store itself never
awaits, so reads and writes are atomic with respect to the event loop.

Locks are reference counted: an entry lives while any coroutine holds or
waits on it, and is dropped by the last one out. Removing a profile never
replaces a lock that still has users.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator

from loguru import logger

from personalization.domain.entities import ProfileUpdate, UserBehaviorProfile, utc_now


@dataclass
class _LockEntry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


@dataclass
class SessionStore:
    """Identity -> profile mapping with merge-on-update semantics."""

    _profiles: dict[str, UserBehaviorProfile] = field(default_factory=dict, init=False)
    _locks: dict[str, _LockEntry] = field(default_factory=dict, init=False)

    def __len__(self) -> int:
        return len(self._profiles)

    def __contains__(self, identity: str) -> bool:
        return identity in self._profiles

    @asynccontextmanager
    async def lock(self, identity: str) -> AsyncIterator[None]:
        """Hold the lock serializing work for one identity."""
        entry = self._locks.get(identity)
        if entry is None:
            entry = self._locks[identity] = _LockEntry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._locks.get(identity) is entry:
                del self._locks[identity]

    def tracked_locks(self) -> int:
        return len(self._locks)

    def get(self, identity: str) -> UserBehaviorProfile | None:
        return self._profiles.get(identity)

    def identities(self) -> list[str]:
        return list(self._profiles)

    def merge(
        self,
        identity: str,
        update: ProfileUpdate,
        now: datetime | None = None,
    ) -> UserBehaviorProfile:
        """Apply a partial update, creating the profile if absent.

        Fields present in the update overwrite the stored ones. The activity
        timestamp is always refreshed and the session counter grows by one.
        """
        now = now or utc_now()

        profile = self._profiles.get(identity)
        if profile is None:
            profile = UserBehaviorProfile(identity=identity, last_active_at=now)
            self._profiles[identity] = profile
            logger.debug(f"Created profile for {identity}")

        if update.viewed_content_ids is not None:
            profile.viewed_content_ids = set(update.viewed_content_ids)
        if update.liked_content_ids is not None:
            profile.liked_content_ids = set(update.liked_content_ids)
        if update.selected_categories is not None:
            profile.selected_categories = list(update.selected_categories)
        if update.interactions is not None:
            profile.interactions = list(update.interactions)

        profile.last_active_at = now
        profile.cumulative_session_seconds += 1
        return profile

    def remove(self, identity: str) -> None:
        """Drop the profile; removing an absent identity is a no-op."""
        if self._profiles.pop(identity, None) is not None:
            logger.debug(f"Removed profile for {identity}")
