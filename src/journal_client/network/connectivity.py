"""
Connectivity heuristic for the request pipeline
"""

import logging
from typing import Optional

from ..clock import Clock, system_clock
from ..storage import KeyValueStore, StorageKeys

logger = logging.getLogger(__name__)


class ConnectivityMonitor:
    """
    Decides whether a request should be attempted now or queued

    The client is considered offline when the explicit online signal is off,
    or when the last successful request is older than stale_after_seconds.
    A missing or unreadable timestamp counts as online. An explicit online
    signal counts as fresh as a successful request, so an idle client whose
    timestamp went stale recovers when the signal is sent again.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Clock = None,
        stale_after_seconds: Optional[float] = 30.0,
        online: bool = True,
    ):
        self.store = store
        self.clock = clock or system_clock
        self.stale_after_seconds = stale_after_seconds
        self._online = online
        self._signalled_at: Optional[float] = None

    @property
    def online(self) -> bool:
        return self._online

    def set_online(self, online: bool) -> None:
        if online != self._online:
            logger.info(f"Connectivity signal changed: {'online' if online else 'offline'}")
        self._online = online
        if online:
            self._signalled_at = self.clock.time()

    async def is_online(self) -> bool:
        if not self._online:
            return False

        raw = await self.store.get(StorageKeys.LAST_SUCCESSFUL_REQUEST)
        if raw is None or self.stale_after_seconds is None:
            return True

        try:
            last_success_ms = int(raw)
        except ValueError:
            logger.warning(f"Error parsing {StorageKeys.LAST_SUCCESSFUL_REQUEST} timestamp: {raw!r}")
            return True

        if self._signalled_at is not None:
            last_success_ms = max(last_success_ms, int(self._signalled_at * 1000))

        window_ms = self.stale_after_seconds * 1000
        return last_success_ms > self.clock.time() * 1000 - window_ms

    async def record_success(self) -> None:
        """Store the time of the latest received response"""
        await self.store.set(StorageKeys.LAST_SUCCESSFUL_REQUEST, str(int(self.clock.time() * 1000)))
