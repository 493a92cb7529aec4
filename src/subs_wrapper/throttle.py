from __future__ import annotations

import asyncio
import random
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator


class RequestThrottle:
    """Gentle outbound limiting for the scraped index.

    Bounds the number of requests in flight and keeps a minimum interval
    between request starts, across all concurrent resolutions in the process.
    """

    def __init__(self, max_concurrent: int = 4, min_interval: float = 0.0) -> None:
        self._sem = asyncio.Semaphore(max(1, max_concurrent))
        self._min_interval = max(0.0, min_interval)
        self._lock = asyncio.Lock()
        self._last = 0.0

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        async with self._sem:
            if self._min_interval > 0:
                async with self._lock:
                    wait = self._min_interval - (time.monotonic() - self._last)
                    if wait > 0:
                        await asyncio.sleep(wait + random.uniform(0.0, 0.05))
                    self._last = time.monotonic()
            yield
