from __future__ import annotations
import asyncio
from dataclasses import dataclass

from feewatch.utils.types import AlertEvent

@dataclass(slots=True)
class QueueStats:
    published: int = 0
    dropped: int = 0
    consumed: int = 0

class NotifyQueue:
    """
    Bounded tap for alert events leaving the alerter task. Publishing never
    blocks the poll loop: on a full queue the incoming event is dropped and
    counted.
    """
    def __init__(self, maxsize: int = 100):
        if maxsize <= 0:
            raise ValueError("maxsize must be > 0")
        self._q: asyncio.Queue[AlertEvent] = asyncio.Queue(maxsize=maxsize)
        self.stats = QueueStats()

    def try_put(self, evt: AlertEvent) -> bool:
        try:
            self._q.put_nowait(evt)
        except asyncio.QueueFull:
            self.stats.dropped += 1
            return False
        self.stats.published += 1
        return True

    async def get(self) -> AlertEvent:
        evt = await self._q.get()
        self.stats.consumed += 1
        return evt

    def qsize(self) -> int:
        return self._q.qsize()
