from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Set, TypeVar

from ..adapters.base import FrontierEntry, PageKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CrawlState(str, Enum):
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class QuotaController:
    """
    Counts saved products for one site crawl.

    ``commit`` is the only way to save: capacity check, extraction, storage and
    increment happen under one lock, so concurrent handlers can never overshoot
    ``target`` or share an ordinal.
    """

    def __init__(self, target: int, on_reached: Optional[Callable[[], None]] = None) -> None:
        if target <= 0:
            raise ValueError("quota target must be > 0")
        self.target = target
        self.saved_count = 0
        self._on_reached = on_reached
        self._lock = asyncio.Lock()

    @property
    def remaining(self) -> int:
        return self.target - self.saved_count

    @property
    def reached(self) -> bool:
        return self.saved_count >= self.target

    async def commit(
        self,
        build: Callable[[], Optional[T]],
        store: Callable[[T], bool],
    ) -> Optional[int]:
        """
        Build a record and store it if there is spare capacity.
        Returns the record's 1-based ordinal, or None if nothing was saved.
        """
        async with self._lock:
            if self.reached:
                return None
            record = build()
            if record is None:
                return None
            if not store(record):
                return None
            self.saved_count += 1
            ordinal = self.saved_count
            if self.reached:
                logger.info("Reached max products limit (%s). Stopping crawl.", self.target)
                if self._on_reached is not None:
                    self._on_reached()
            return ordinal


class CrawlFrontier:
    """
    Pending URLs of one site crawl plus the RUNNING -> DRAINING -> STOPPED lifecycle.
    Each URL is fetched at most once; nothing is re-enqueued.
    """

    def __init__(self, max_requests: Optional[int] = None) -> None:
        self.state = CrawlState.RUNNING
        self.max_requests = max_requests
        self.fetched = 0
        self._queue: asyncio.Queue[FrontierEntry] = asyncio.Queue()
        self._seen: Set[str] = set()

    def __len__(self) -> int:
        return self._queue.qsize()

    def enqueue(self, urls: Iterable[str], label: PageKind) -> int:
        if self.state is not CrawlState.RUNNING:
            return 0
        added = 0
        for url in urls:
            if url in self._seen:
                continue
            self._seen.add(url)
            self._queue.put_nowait(FrontierEntry(url=url, label=label))
            added += 1
        return added

    def drain(self) -> None:
        """Stop admitting work; queued entries are dropped, in-flight ones finish."""
        if self.state is not CrawlState.RUNNING:
            return
        self.state = CrawlState.DRAINING
        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        if dropped:
            logger.debug("Frontier draining: dropped %s queued entries", dropped)

    def _admit(self, entry: FrontierEntry) -> bool:
        if self.state is not CrawlState.RUNNING:
            return False
        if self.max_requests is not None and self.fetched >= self.max_requests:
            logger.info("Request budget of %s exhausted; skipping %s", self.max_requests, entry.url)
            return False
        self.fetched += 1
        return True

    async def run(self, handler: Callable[[FrontierEntry], Awaitable[None]], concurrency: int) -> None:
        async def worker() -> None:
            while True:
                entry = await self._queue.get()
                try:
                    if self._admit(entry):
                        await handler(entry)
                except Exception as exc:  # one bad page must not end the crawl
                    logger.warning("Handler failed on %s: %r", entry.url, exc)
                finally:
                    self._queue.task_done()

        workers = [asyncio.create_task(worker()) for _ in range(max(1, concurrency))]
        try:
            await self._queue.join()
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            self.state = CrawlState.STOPPED
