"""Real-time personalization service.

Runs the per-identity state machine for one analyzer:

    Absent --activity--> Tracked   merge, start refresh timer, unicast once
    Tracked --activity--> Tracked  merge, unicast once
    Tracked --timer--> Tracked     unicast against the live profile
    Tracked --new content--> Tracked  one personalised score per identity
    Tracked --disconnect--> Absent cancel timer, drop profile and channels

Work for a single identity is serialized through the session store's
per-identity lock; different identities proceed concurrently. Model
inference runs in worker threads so a slow prediction never stalls the
event loop.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from loguru import logger

from personalization.analyzers.base import RealtimeAnalyzer
from personalization.domain.entities import (
    ContentItem,
    Recommendation,
    ScoreUpdate,
    UserBehaviorProfile,
    utc_now,
)
from personalization.domain.errors import MalformedInput, NotInitialized
from personalization.domain.protocols import IDeliveryChannel
from personalization.realtime.content_cache import ContentCache
from personalization.realtime.events import (
    ACTIVITY_UPDATE,
    NEW_CONTENT,
    build_profile,
    parse_content,
    parse_profile_update,
)
from personalization.realtime.router import BroadcastRouter
from personalization.realtime.scheduler import RefreshScheduler
from personalization.realtime.session_store import SessionStore


@dataclass
class Connection:
    """One client connection and the identities it has bound."""

    channel: IDeliveryChannel
    identities: set[str] = field(default_factory=set)

    @property
    def connection_id(self) -> str:
        return self.channel.channel_id


@dataclass
class PersonalizationService:
    """Session pipeline for one real-time analyzer."""

    analyzer: RealtimeAnalyzer
    refresh_interval_seconds: float = 5.0
    clock: Callable[[], datetime] = utc_now

    store: SessionStore = field(default_factory=SessionStore)
    content: ContentCache = field(default_factory=ContentCache)
    router: BroadcastRouter = field(default_factory=BroadcastRouter)
    scheduler: RefreshScheduler = field(init=False)

    def __post_init__(self) -> None:
        self.scheduler = RefreshScheduler(interval_seconds=self.refresh_interval_seconds)

    @property
    def name(self) -> str:
        return self.analyzer.name

    def open_connection(self, channel: IDeliveryChannel) -> Connection:
        logger.info(f"[{self.name}] connection opened: {channel.channel_id}")
        return Connection(channel=channel)

    async def handle_event(self, connection: Connection, event: str, payload: dict[str, Any] | None) -> Any:
        """Dispatch one inbound event received on a connection.

        Raises:
            MalformedInput: For an unknown event name
        """
        if event == ACTIVITY_UPDATE:
            return await self.handle_activity(connection, payload)
        if event == NEW_CONTENT:
            return await self.handle_new_content(payload)
        raise MalformedInput(f"Unknown event '{event}'")

    async def handle_activity(self, connection: Connection, payload: dict[str, Any] | None) -> int:
        """Merge an activity update and score the identity once.

        The identity is the payload's address, falling back to the
        connection id.

        Returns:
            Number of score updates delivered
        """
        update = parse_profile_update(payload)
        identity = update.address or connection.connection_id

        async with self.store.lock(identity):
            is_new = identity not in self.store
            self.store.merge(identity, update, self.clock())
            self.router.register(identity, connection.channel)
            connection.identities.add(identity)

            if is_new:
                self.scheduler.start(identity, self.refresh)
                logger.info(f"[{self.name}] tracking {identity}")

            return await self._unicast(identity)

    async def handle_new_content(self, payload: dict[str, Any] | ContentItem | None) -> int:
        """Cache a content item and score it against every tracked identity.

        Returns:
            Number of score updates delivered

        Raises:
            NotInitialized: If the analyzer has no trained weights, after
                every identity has been attempted
        """
        item = payload if isinstance(payload, ContentItem) else parse_content(payload)
        self.content.add(item)
        logger.debug(f"[{self.name}] new content {item.content_id}")

        async def produce(identity: str) -> ScoreUpdate | None:
            async with self.store.lock(identity):
                profile = self.store.get(identity)
                if profile is None:
                    return None
                return await asyncio.to_thread(self.analyzer.score, profile, item, self.clock())

        results = await self.router.multicast(self.store.identities(), produce)

        delivered = 0
        not_initialized: NotInitialized | None = None
        for identity, result in results.items():
            if isinstance(result, NotInitialized):
                not_initialized = result
            elif isinstance(result, BaseException):
                logger.opt(exception=result).error(
                    f"[{self.name}] scoring {item.content_id} for {identity} failed"
                )
            else:
                delivered += result

        if not_initialized is not None:
            raise not_initialized
        return delivered

    async def refresh(self, identity: str) -> int:
        """Timer callback: re-score the identity's current profile."""
        async with self.store.lock(identity):
            if identity not in self.store:
                return 0
            try:
                return await self._unicast(identity)
            except NotInitialized as e:
                logger.warning(f"[{self.name}] refresh for {identity} skipped: {e}")
                return 0

    async def recommend(self, payload: dict[str, Any] | None, limit: int = 10) -> list[Recommendation]:
        """Rank cached content for a profile, best first.

        A tracked identity is ranked on its live profile; otherwise the
        payload itself describes the profile.

        Raises:
            UnknownAnalyzer: If the analyzer does not rank content
            NotInitialized: If the analyzer has no trained weights
        """
        update = parse_profile_update(payload)
        identity = update.address
        if identity is not None and identity in self.store:
            async with self.store.lock(identity):
                profile = self.store.get(identity)
                if profile is not None:
                    return await self._rank(profile, limit)
        return await self._rank(build_profile(update, "anonymous", self.clock()), limit)

    async def disconnect(self, identity: str) -> None:
        """Stop tracking an identity. Idempotent."""
        self.scheduler.cancel(identity)
        async with self.store.lock(identity):
            self.store.remove(identity)
            self.router.unregister(identity)
        logger.info(f"[{self.name}] stopped tracking {identity}")

    async def close_connection(self, connection: Connection) -> None:
        """Tear down every identity bound to this specific connection."""
        for identity in list(connection.identities):
            await self.disconnect(identity)
        connection.identities.clear()
        logger.info(f"[{self.name}] connection closed: {connection.connection_id}")

    async def shutdown(self) -> None:
        self.scheduler.cancel_all()
        for identity in self.store.identities():
            await self.disconnect(identity)

    async def _rank(self, profile: UserBehaviorProfile, limit: int) -> list[Recommendation]:
        items = self.content.snapshot()
        now = self.clock()
        return await asyncio.to_thread(self.analyzer.rank, profile, items, now, limit)

    async def _unicast(self, identity: str) -> int:
        """Score the stored profile against every cached item. Caller holds the lock."""
        profile = self.store.get(identity)
        items = self.content.snapshot()
        if profile is None or not items:
            return 0

        now = self.clock()
        updates = await asyncio.to_thread(
            lambda: [self.analyzer.score(profile, item, now) for item in items]
        )
        return await self.router.unicast(identity, updates)
