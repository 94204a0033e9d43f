"""
Time source shared by every time-dependent component of the client
"""

import asyncio
import time


class Clock:
    """Wall clock, monotonic clock and sleep behind one object so tests can replace them"""

    def monotonic(self) -> float:
        return time.monotonic()

    def time(self) -> float:
        """Seconds since the epoch"""
        return time.time()

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


system_clock = Clock()
