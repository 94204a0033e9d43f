"""
Offline request queue

Buffers calls that could not be attempted for lack of connectivity and
replays them in enqueue order once connectivity returns:
- Strict FIFO, the head is only removed after it succeeds or is dropped
- Non-retryable failures are dropped with a logged reason
- Retryable failures and breaker rejections halt the drain and leave the
  item at the head
- A fixed delay between items avoids bursts
- At most one drain loop per queue
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Deque, Optional

from ..clock import Clock, system_clock
from ..error_recovery.errors import ErrorClassifier, ErrorKind

if TYPE_CHECKING:
    from ..network.connectivity import ConnectivityMonitor

logger = logging.getLogger(__name__)

# Local breaker rejection; the request never reached the server
HALT_KINDS = frozenset({ErrorKind.SERVICE_UNAVAILABLE})


@dataclass
class QueuedRequest:
    """A deferred call owned by the queue until executed or dropped"""
    execute: Callable[[], Awaitable[Any]]
    enqueued_at: float
    description: str = ""


class OfflineQueue:
    """FIFO replay queue for requests made while offline"""

    def __init__(
        self,
        connectivity: "ConnectivityMonitor",
        classifier: ErrorClassifier = None,
        clock: Clock = None,
        item_delay_seconds: float = 1.0,
    ):
        self.connectivity = connectivity
        self.classifier = classifier or ErrorClassifier()
        self.clock = clock or system_clock
        self.item_delay_seconds = item_delay_seconds
        self._queue: Deque[QueuedRequest] = deque()
        self._processing = False
        self._drain_task: Optional[asyncio.Task] = None
        self.stats = {"executed": 0, "dropped": 0, "halted": 0}

    def __len__(self) -> int:
        return len(self._queue)

    @property
    def is_draining(self) -> bool:
        return self._processing

    def pending(self) -> list:
        return list(self._queue)

    def enqueue(self, request: QueuedRequest) -> None:
        """Append a request and start a drain if none is running"""
        self._queue.append(request)
        logger.info(f"Queued offline request {request.description or ''} (queue depth: {len(self._queue)})")
        self.schedule_drain()

    def schedule_drain(self) -> Optional[asyncio.Task]:
        """Start a background drain unless one is already active"""
        if self._processing or not self._queue:
            return None
        if self._drain_task is not None and not self._drain_task.done():
            return self._drain_task
        self._drain_task = asyncio.create_task(self.drain())
        return self._drain_task

    async def wait_idle(self) -> None:
        """Wait for the background drain, if any, to finish"""
        task = self._drain_task
        if task is not None and not task.done():
            await task

    async def drain(self) -> int:
        """
        Execute queued requests in order

        Returns:
            Number of requests removed from the queue by this drain
        """
        if self._processing or not self._queue:
            return 0

        self._processing = True
        removed = 0
        try:
            while self._queue:
                request = self._queue[0]

                if not await self.connectivity.is_online():
                    logger.debug(f"Offline, pausing queue with {len(self._queue)} pending requests")
                    break

                try:
                    await request.execute()
                    self._queue.popleft()
                    removed += 1
                    self.stats["executed"] += 1
                    logger.info(f"Replayed offline request {request.description or ''}")
                except Exception as e:
                    classified = self.classifier.classify_exception(e)
                    if classified is not None and (classified.retryable or classified.kind in HALT_KINDS):
                        self.stats["halted"] += 1
                        logger.info(
                            f"Failure replaying {request.description or 'request'} "
                            f"({classified.kind.value}), halting queue"
                        )
                        break

                    self._queue.popleft()
                    removed += 1
                    self.stats["dropped"] += 1
                    reason = classified.kind.value if classified else type(e).__name__
                    logger.warning(f"Dropping queued request {request.description or ''}: {reason}: {e}")

                await self.clock.sleep(self.item_delay_seconds)
        finally:
            self._processing = False

        return removed

    def clear(self) -> None:
        self._queue.clear()
