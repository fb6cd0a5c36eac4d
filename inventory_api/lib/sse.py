"""
Server-Sent Events broker.

Dashboards subscribe to the "units" channel and refetch their unit list
and stats whenever a unit_updated event arrives.
"""
import asyncio
import json
import logging
import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Optional, Set

logger = logging.getLogger(__name__)

UNITS_CHANNEL = "units"


@dataclass
class SSEMessage:
    """SSE message format."""
    data: Dict[str, Any]
    event: str = "message"
    id: Optional[str] = None
    retry: Optional[int] = None

    def encode(self) -> str:
        lines = []

        if self.id:
            lines.append(f"id: {self.id}")

        if self.event != "message":
            lines.append(f"event: {self.event}")

        if self.retry:
            lines.append(f"retry: {self.retry}")

        lines.append(f"data: {json.dumps(self.data, default=str, ensure_ascii=False)}")

        return "\n".join(lines) + "\n\n"


@dataclass(eq=False)
class Subscriber:
    queue: asyncio.Queue = field(default_factory=lambda: asyncio.Queue(maxsize=100))
    created_at: float = field(default_factory=time.time)


class SSEManager:
    """Channel based pub/sub for connected dashboards."""

    def __init__(self):
        self._channels: Dict[str, Set[Subscriber]] = defaultdict(set)
        self._lock = asyncio.Lock()
        self._sequence = 0

    async def subscribe(self, channel: str) -> Subscriber:
        subscriber = Subscriber()

        async with self._lock:
            self._channels[channel].add(subscriber)

        return subscriber

    async def unsubscribe(self, channel: str, subscriber: Subscriber) -> None:
        async with self._lock:
            self._channels[channel].discard(subscriber)
            if not self._channels[channel]:
                del self._channels[channel]

    async def publish(self, channel: str, event: str, data: Dict[str, Any]) -> int:
        """Broadcast an event with a monotonically increasing id."""
        self._sequence += 1
        return await self.broadcast(
            channel,
            SSEMessage(data=data, event=event, id=str(self._sequence)),
        )

    async def broadcast(self, channel: str, message: SSEMessage) -> int:
        """
        Broadcast message to all subscribers on channel.

        Subscribers whose queue is full miss the message; they will catch up
        on their next refetch. Returns number of subscribers reached.
        """
        async with self._lock:
            subscribers = list(self._channels.get(channel, set()))

        count = 0
        for subscriber in subscribers:
            try:
                subscriber.queue.put_nowait(message)
                count += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping '{message.event}' for slow subscriber on {channel}")

        return count

    async def get_subscriber_count(self, channel: str) -> int:
        async with self._lock:
            return len(self._channels.get(channel, set()))

    async def stream(
        self,
        channel: str,
        ping_interval: int = 30,
        initial_message: Optional[SSEMessage] = None,
    ) -> AsyncGenerator[str, None]:
        """
        Generate SSE stream for a channel.

        Yields encoded SSE messages and a ping every ping_interval seconds.
        Runs until the client disconnects.
        """
        subscriber = await self.subscribe(channel)

        try:
            if initial_message:
                yield initial_message.encode()

            while True:
                try:
                    message = await asyncio.wait_for(
                        subscriber.queue.get(),
                        timeout=ping_interval
                    )
                    yield message.encode()
                except asyncio.TimeoutError:
                    yield SSEMessage(data={}, event="ping").encode()

        finally:
            await self.unsubscribe(channel, subscriber)
