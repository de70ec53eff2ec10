from __future__ import annotations

import asyncio
from logging import getLogger
from typing import AsyncIterator, Optional

from rtsession.events import RealtimeEvent


logger = getLogger(__name__)


class EventChannel:
    """
    Single-subscriber event channel with an eager, unbounded buffer.

    Events published before anyone subscribes are kept and handed to the first
    subscriber. A later ``subscribe()`` takes over delivery: undelivered events
    move to the new iterator and the previous iterator ends. ``close()`` ends the
    current and any future iterator once the buffered events are drained.

    Not thread-safe: publish/subscribe/close from the owning event loop only.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Optional[RealtimeEvent]] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: RealtimeEvent) -> None:
        if self._closed:
            logger.debug("[RT] Channel closed, dropping %s", type(event).__name__)
            return
        self._queue.put_nowait(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    def subscribe(self) -> AsyncIterator[RealtimeEvent]:
        previous = self._queue
        queue: asyncio.Queue[Optional[RealtimeEvent]] = asyncio.Queue()

        # Move the backlog to the new subscriber, the close marker is always last.
        while not previous.empty():
            ev = previous.get_nowait()
            if ev is not None:
                queue.put_nowait(ev)
        if self._closed:
            queue.put_nowait(None)
        previous.put_nowait(None)
        self._queue = queue

        async def _aiter() -> AsyncIterator[RealtimeEvent]:
            while True:
                ev = await queue.get()
                if ev is None:
                    break
                yield ev
        return _aiter()
