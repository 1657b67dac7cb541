from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .base import CrawlEngine, CrawlReport
from ..adapters.base import ProductRecord
from ..adapters.registry import AdapterRegistry
from ..config import CrawlConfig
from ..export.base import Exporter
from ..export.sink import ResultSink
from ..utils.loader import load_symbol

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    reports: List[CrawlReport] = field(default_factory=list)

    @property
    def sites(self) -> List[str]:
        return [r.site for r in self.reports]

    @property
    def total_saved(self) -> int:
        return sum(len(r.records) for r in self.reports)

    @property
    def records(self) -> List[ProductRecord]:
        return [record for r in self.reports for record in r.records]


def build_registry(cfg: CrawlConfig) -> AdapterRegistry:
    registry = AdapterRegistry(currency_symbol=cfg.currency_symbol)
    registry.discover_entry_points()
    # Allow runtime registration of additional adapters
    for dotted in cfg.extra_adapters:
        try:
            adapter_cls = load_symbol(dotted)
            registry.register(adapter_cls())
        except Exception as exc:
            logger.warning("Failed to load adapter %s: %r", dotted, exc)
    return registry


def build_exporter(cfg: CrawlConfig) -> Exporter:
    exporter_cls = load_symbol(cfg.exporter)
    return exporter_cls(columns=cfg.columns)


async def crawl_sites(
    cfg: CrawlConfig,
    registry: Optional[AdapterRegistry] = None,
    exporter: Optional[Exporter] = None,
) -> RunSummary:
    """
    Crawl every configured site in order; one site finishes (export included)
    before the next starts. Without an exporter nothing is written.
    """
    registry = registry or build_registry(cfg)
    summary = RunSummary()
    incremental = exporter is not None and cfg.persist == "incremental"
    append = cfg.write_mode == "append"

    listener: Optional[Callable[[ProductRecord], None]] = None
    if incremental:
        if not append:
            # Start from a fresh file holding only the header.
            exporter.export([], cfg.output_path, append=False)

        def write_one(record: ProductRecord) -> None:
            exporter.export([record], cfg.output_path, append=True)

        listener = write_one

    for name in cfg.sites:
        adapter = registry.get(name)
        sink = ResultSink(dedup=cfg.dedup, policy=cfg.dedup_policy, listener=listener)
        engine_cls = load_symbol(adapter.engine)
        engine: CrawlEngine = engine_cls(cfg, adapter, sink)

        report = await engine.crawl(cfg.query)
        summary.reports.append(report)

        if exporter is not None and not incremental:
            exporter.export(report.records, cfg.output_path, append=append or len(summary.reports) > 1)

        cheapest = sink.by_price()
        if cheapest:
            logger.info("%s cheapest: %s (%s)", report.site, cheapest[0].title, cheapest[0].price)
        logger.info(
            "%s: saved %s | visited %s | failed %s | missing fields %s",
            report.site, len(report.records), report.visited_count, report.failed_count, report.missed_count,
        )
    return summary
