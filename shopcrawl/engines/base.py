from __future__ import annotations

from dataclasses import dataclass, field
from typing import List
from abc import ABC, abstractmethod
import logging

from ..adapters.base import ProductRecord, SiteAdapter
from ..config import CrawlConfig
from ..export.sink import ResultSink
from .frontier import CrawlState

logger = logging.getLogger(__name__)


class SeedError(ValueError):
    """The crawl could not start because the seed search URL is unusable."""


@dataclass
class CrawlReport:
    site: str
    records: List[ProductRecord] = field(default_factory=list)
    saved_count: int = 0
    visited_count: int = 0
    failed_count: int = 0
    missed_count: int = 0
    state: CrawlState = CrawlState.STOPPED


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own one site's crawl lifecycle.
    """

    def __init__(self, config: CrawlConfig, adapter: SiteAdapter, sink: ResultSink) -> None:
        self.config = config
        self.adapter = adapter
        self.sink = sink

    @abstractmethod
    async def crawl(self, query: str) -> CrawlReport:  # pragma: no cover - interface
        ...

    def store_record(self, record: ProductRecord) -> bool:
        """Hand a record to the sink; duplicates are logged and not counted."""
        stored = self.sink.add(record)
        if not stored:
            logger.info("Duplicate title %r from %s not counted", record.title, record.url)
        return stored
