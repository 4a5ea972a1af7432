"""Fan-out of session snapshots to Server-Sent Events subscribers."""

from __future__ import annotations

import asyncio
import json
import logging

logger = logging.getLogger(__name__)

RETRY_FRAME = "retry: 2000\n\n"
KEEPALIVE_FRAME = ": keepalive\n\n"


def format_event(payload: str) -> str:
    """Wrap a serialized snapshot in an SSE ``data`` frame."""
    lines = payload.splitlines() or [""]
    return "".join(f"data: {line}\n" for line in lines) + "\n"


def encode_snapshot(snapshot: dict) -> str:
    return json.dumps(snapshot, ensure_ascii=False, separators=(",", ":"))


class Subscription:
    """One long-lived client connection's mailbox."""

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue[str] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    def offer(self, payload: str) -> None:
        """Enqueue without blocking; a full mailbox drops its oldest snapshot."""
        if self.queue.full():
            try:
                self.queue.get_nowait()
            except asyncio.QueueEmpty:
                pass
        self.queue.put_nowait(payload)

    async def get(self) -> str:
        return await self.queue.get()


class Broadcaster:
    def __init__(self, queue_size: int = 8) -> None:
        self._queue_size = max(1, queue_size)
        self._subscribers: set[Subscription] = set()

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, snapshot: dict) -> Subscription:
        """Register a subscriber, primed with *snapshot* so it never starts empty."""
        sub = Subscription(self._queue_size)
        sub.offer(encode_snapshot(snapshot))
        self._subscribers.add(sub)
        logger.info("[broadcast] Subscriber joined (%d connected).", len(self._subscribers))
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        sub.closed = True
        if sub in self._subscribers:
            self._subscribers.discard(sub)
            logger.info("[broadcast] Subscriber left (%d connected).", len(self._subscribers))

    def publish(self, snapshot: dict) -> int:
        """Push *snapshot* to every live subscriber. Returns the delivery count."""
        payload = encode_snapshot(snapshot)
        delivered = 0
        for sub in list(self._subscribers):
            if sub.closed:
                self._subscribers.discard(sub)
                continue
            try:
                sub.offer(payload)
            except Exception as exc:
                logger.warning("[broadcast] Dropping subscriber (%s).", exc)
                self.unsubscribe(sub)
                continue
            delivered += 1
        return delivered
