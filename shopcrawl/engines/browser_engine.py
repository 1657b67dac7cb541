from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

from playwright.async_api import Error as PlaywrightError, async_playwright

from .base import CrawlEngine, CrawlReport, SeedError
from .frontier import CrawlFrontier, QuotaController
from ..adapters.base import CardResult, FrontierEntry, PageKind, ProductRecord
from ..config import CrawlConfig
from ..utils.parsing import absolutize

logger = logging.getLogger(__name__)


def app_data_dir() -> Path:
    base = os.getenv("LOCALAPPDATA") or str(Path.home() / ".shopcrawl")
    p = Path(base) / "shopcrawl"
    p.mkdir(parents=True, exist_ok=True)
    return p


def configure_browsers_path() -> None:
    # Keep downloaded browsers in our app dir unless the user already chose a location.
    os.environ.setdefault("PLAYWRIGHT_BROWSERS_PATH", str(app_data_dir() / "ms-playwright"))


@asynccontextmanager
async def browser_session(config: CrawlConfig) -> AsyncIterator[Any]:
    """Yield a Playwright browser context; pages are opened per frontier entry."""
    configure_browsers_path()
    async with async_playwright() as pw:
        try:
            browser = await pw.chromium.launch(headless=config.headless)
        except PlaywrightError as exc:
            raise SeedError(f"cannot launch the browser: {exc}") from exc
        context = await browser.new_context()
        try:
            yield context
        finally:
            await context.close()
            await browser.close()


class BrowserCrawlEngine(CrawlEngine):
    """
    Crawl of a client-rendered site. Every listing page is rendered by the browser
    and the adapter bulk-reads up to the remaining quota of result cards from it.
    """

    async def crawl(self, query: str) -> CrawlReport:
        cfg = self.config
        adapter = self.adapter
        report = CrawlReport(site=adapter.label)

        seed = absolutize(adapter.build_search_url(query), adapter.base_url)
        if seed is None:
            raise SeedError(f"{adapter.name}: cannot build a search URL for {query!r}")

        frontier = CrawlFrontier(max_requests=cfg.max_requests_per_crawl)
        quota = QuotaController(cfg.max_products, on_reached=frontier.drain)
        if not frontier.enqueue([seed], PageKind.LISTING):
            raise SeedError(f"{adapter.name}: seed {seed} was not admitted")

        logger.info("%s: crawling %s in browser (max %s products)", adapter.label, seed, cfg.max_products)
        async with browser_session(cfg) as context:
            async def handle(entry: FrontierEntry) -> None:
                await self._handle(context, entry, frontier, quota, report)

            await frontier.run(handle, cfg.max_concurrency)

        report.saved_count = quota.saved_count
        report.records = self.sink.export_all()
        report.state = frontier.state
        logger.info("%s crawl complete. Scraped %s products.", adapter.label, quota.saved_count)
        return report

    async def _handle(
        self,
        context: Any,
        entry: FrontierEntry,
        frontier: CrawlFrontier,
        quota: QuotaController,
        report: CrawlReport,
    ) -> None:
        kind = self.adapter.classify(entry.url)
        if kind is PageKind.UNKNOWN:
            kind = entry.label
        if kind is not PageKind.LISTING:
            logger.debug("%s has no product-page phase; skipping %s", self.adapter.label, entry.url)
            return

        logger.info("%s Scraping: %s", self.adapter.label, entry.url)
        page = await context.new_page()
        try:
            try:
                await page.goto(entry.url, timeout=self.config.request_timeout * 1000, wait_until="domcontentloaded")
                cards = await self.adapter.read_cards(page, quota.remaining)
            except PlaywrightError as exc:
                report.failed_count += 1
                logger.warning("Failed to render %s: %s", entry.url, exc)
                return
            finally:
                report.visited_count += 1

            for card in cards:
                if quota.reached:
                    break
                await self._save_card(card, quota)

            if self.config.follow_pagination and not quota.reached:
                next_url = await self.adapter.next_page_url(page)
                if next_url and frontier.enqueue([next_url], PageKind.LISTING):
                    logger.info("Enqueued next listing page %s", next_url)
        finally:
            await page.close()

    async def _save_card(self, card: CardResult, quota: QuotaController) -> None:
        record = ProductRecord.from_fields(self.adapter.label, card.url, card.fields)
        ordinal = await quota.commit(lambda: record, self.store_record)
        if ordinal is not None:
            logger.info("%s saved #%s: %s", self.adapter.label, ordinal, record.title)
