"""
Progress events published while a plan runs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Callable

logger = logging.getLogger(__name__)


class ProgressKind(str, Enum):
    TASK = "task"
    COOLDOWN = "cooldown"
    COMPLETE = "complete"


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    percent: int
    kind: ProgressKind = ProgressKind.TASK
    position: int | None = None
    label: str | None = None
    run_id: str = ""


ProgressListener = Callable[[ProgressEvent], None]

_CLOSED = object()


class ProgressChannel:
    """
    Fan-out of progress events for one run.

    Listeners are called synchronously in subscription order. Once the
    channel is closed (the run finished or was discarded) further events are
    dropped, so a discarded run can never reach its subscribers again.
    """

    def __init__(self, run_id: str = "") -> None:
        self.run_id = run_id
        self._listeners: list[ProgressListener] = []
        self._queues: list[asyncio.Queue[object]] = []
        self._history: list[ProgressEvent] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def history(self) -> tuple[ProgressEvent, ...]:
        return tuple(self._history)

    def subscribe(self, listener: ProgressListener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it again."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def publish(self, event: ProgressEvent) -> bool:
        if self._closed:
            logger.debug("Dropping progress event for closed run %s: %s", self.run_id, event.message)
            return False

        self._history.append(event)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Progress listener failed for run %s.", self.run_id)
        for queue in self._queues:
            queue.put_nowait(event)
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for queue in self._queues:
            queue.put_nowait(_CLOSED)

    async def stream(self) -> AsyncIterator[ProgressEvent]:
        """
        Iterate over events as they are published, ending when the channel closes.

        Events published before iteration started are replayed first.
        """
        queue: asyncio.Queue[object] = asyncio.Queue()
        for event in self._history:
            queue.put_nowait(event)
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._queues.append(queue)
        try:
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                assert isinstance(item, ProgressEvent)
                yield item
        finally:
            if queue in self._queues:
                self._queues.remove(queue)
