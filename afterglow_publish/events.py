"""
Events emitted during a publish, and the channel that carries them.

Emission never blocks: events are queued for whoever drains the channel, and
nothing waits for them to be consumed.
"""

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union


ACTION_UPLOAD = 'upload'
ACTION_DELETE = 'delete'
ACTION_INVALIDATE = 'invalidate'


@dataclass(frozen=True)
class PublishProgress:
    """Emitted before each upload/delete, and once before invalidation."""
    current: int
    total: int
    file: str
    action: str

    def to_dict(self) -> dict:
        return {'current': self.current, 'total': self.total, 'file': self.file, 'action': self.action}


@dataclass(frozen=True)
class PublishErrorEvent:
    """Emitted before a failure aborts an execute call."""
    error: str
    file: str = ''

    def to_dict(self) -> dict:
        return {'error': self.error, 'file': self.file}


@dataclass(frozen=True)
class PublishResult:
    """Emitted once per execute, on completion or cancellation."""
    uploaded: int
    deleted: int
    unchanged: int

    def to_dict(self) -> dict:
        return {'uploaded': self.uploaded, 'deleted': self.deleted, 'unchanged': self.unchanged}


@dataclass(frozen=True)
class ThumbnailProgress:
    """Emitted after each thumbnail; a single all-zero event when there are none."""
    current: int
    total: int
    filename: str

    def to_dict(self) -> dict:
        return {'current': self.current, 'total': self.total, 'filename': self.filename}


Event = Union[PublishProgress, PublishErrorEvent, PublishResult, ThumbnailProgress]

_CLOSED = object()


class EventChannel:
    """
    Unbounded, non-blocking event queue.

    `emit` may be called from the event loop or from worker threads. The
    consumer iterates with `async for event in channel` until `close()`.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._queue: asyncio.Queue = asyncio.Queue()

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the loop the consumer runs on."""
        self._loop = loop

    def _put(self, item) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is None or running is self._loop:
            self._queue.put_nowait(item)
        else:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)

    def emit(self, event: Event) -> None:
        """Queue an event without waiting."""
        self._put(event)

    def close(self) -> None:
        """Signal the consumer that no more events will follow."""
        self._put(_CLOSED)

    def drain(self) -> list:
        """Every event queued so far, without waiting."""
        events = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return events
            if item is not _CLOSED:
                events.append(item)

    async def __aiter__(self) -> AsyncIterator[Event]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
