"""Delivery of score updates to the identities they belong to.

The router owns only the identity -> channel bindings. It never owns
profiles or content. Delivery is fire-and-forget: an unreachable channel
is dropped from the attempt and the failure is logged, never retried.
"""

import asyncio
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from loguru import logger

from personalization.domain.entities import ScoreUpdate
from personalization.domain.errors import DeliveryFailure
from personalization.domain.protocols import IDeliveryChannel


@dataclass
class BroadcastRouter:
    """Routes score updates to the channels bound to an identity."""

    _channels: dict[str, dict[str, IDeliveryChannel]] = field(
        default_factory=lambda: defaultdict(dict), init=False
    )

    def register(self, identity: str, channel: IDeliveryChannel) -> None:
        self._channels[identity][channel.channel_id] = channel

    def unregister(self, identity: str, channel: IDeliveryChannel | None = None) -> None:
        """Unbind one channel, or every channel when none is given."""
        if channel is None:
            self._channels.pop(identity, None)
            return
        bound = self._channels.get(identity)
        if bound is None:
            return
        bound.pop(channel.channel_id, None)
        if not bound:
            self._channels.pop(identity, None)

    def is_reachable(self, identity: str) -> bool:
        return bool(self._channels.get(identity))

    async def deliver(self, identity: str, update: ScoreUpdate) -> int:
        """Send one update to every channel of the identity.

        Returns:
            Number of channels the update reached
        """
        channels = list(self._channels.get(identity, {}).values())
        if not channels:
            logger.debug(f"No channel bound to {identity}; dropping {update.content_id}")
            return 0

        delivered = 0
        message = update.to_message()
        for channel in channels:
            try:
                await channel.send(message)
                delivered += 1
            except (DeliveryFailure, ConnectionError) as e:
                logger.debug(f"Dropped update for {identity} on {channel.channel_id}: {e}")
        return delivered

    async def unicast(self, identity: str, updates: Iterable[ScoreUpdate]) -> int:
        """Deliver a batch of an identity's own updates, in order."""
        delivered = 0
        for update in updates:
            if update.identity != identity:
                raise ValueError(f"Update for {update.identity} routed to {identity}")
            delivered += await self.deliver(identity, update)
        return delivered

    async def multicast(
        self,
        identities: Iterable[str],
        produce: Callable[[str], Awaitable[ScoreUpdate | None]],
    ) -> dict[str, int | BaseException]:
        """Produce and deliver one personalised update per identity, concurrently.

        Each identity only ever receives the update produced for it. A failure
        while producing one identity's update is returned in place of its
        delivery count and does not affect the others.
        """
        identities = list(identities)

        async def _one(identity: str) -> int:
            update = await produce(identity)
            if update is None:
                return 0
            return await self.deliver(identity, update)

        results = await asyncio.gather(
            *(_one(identity) for identity in identities),
            return_exceptions=True,
        )
        return dict(zip(identities, results))
