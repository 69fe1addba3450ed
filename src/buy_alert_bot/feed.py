from __future__ import annotations

import asyncio
import logging

from .types import Alert

logger = logging.getLogger(__name__)


class LiveFeed:
    """Fans alerts out to overlay subscribers (SSE streams, websockets)."""

    def __init__(self, queue_size: int = 16) -> None:
        self.queue_size = queue_size
        self._subscribers: set[asyncio.Queue[Alert]] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[Alert]:
        queue: asyncio.Queue[Alert] = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[Alert]) -> None:
        self._subscribers.discard(queue)

    def publish(self, alert: Alert) -> int:
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(alert)
            except asyncio.QueueFull:
                logger.warning("Live feed subscriber is behind; dropping alert %s", alert.alert_id)
                continue
            delivered += 1
        return delivered
