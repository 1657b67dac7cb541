from __future__ import annotations

import logging
from typing import Optional

from aiohttp import ClientSession

from .base import CrawlEngine, CrawlReport, SeedError
from .frontier import CrawlFrontier, QuotaController
from ..adapters.base import FrontierEntry, Page, PageKind, ProductRecord
from ..utils.http import create_session, fetch_text
from ..utils.parsing import absolutize, extract_fields, extract_links, parse_html

logger = logging.getLogger(__name__)


class SimpleCrawlEngine(CrawlEngine):
    """
    Two-phase async crawl of a server-rendered site.
    - Listing pages enqueue at most as many product links as the quota still needs.
    - Product pages are extracted and saved inside the quota critical section.
    - Concurrency is the number of frontier workers.
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

        logger.info("%s: crawling %s (max %s products)", adapter.label, seed, cfg.max_products)
        session = create_session()
        try:
            async def handle(entry: FrontierEntry) -> None:
                await self._handle(session, entry, frontier, quota, report)

            await frontier.run(handle, cfg.max_concurrency)
        finally:
            await session.close()

        report.saved_count = quota.saved_count
        report.records = self.sink.export_all()
        report.state = frontier.state
        logger.info("%s crawl complete. Scraped %s products.", adapter.label, quota.saved_count)
        return report

    async def _handle(
        self,
        session: ClientSession,
        entry: FrontierEntry,
        frontier: CrawlFrontier,
        quota: QuotaController,
        report: CrawlReport,
    ) -> None:
        cfg = self.config
        logger.info("Crawling: %s", entry.url)
        html = await fetch_text(
            session,
            entry.url,
            timeout=cfg.request_timeout,
            user_agent=cfg.user_agent,
            retries=cfg.retries,
        )
        report.visited_count += 1
        if html is None:
            report.failed_count += 1
            return

        # Links enqueued as products are always extracted.
        kind = self.adapter.classify(entry.url)
        if entry.label is PageKind.PRODUCT or kind is PageKind.UNKNOWN:
            kind = entry.label
        page = Page(url=entry.url, site=self.adapter.label, kind=kind, document=parse_html(html))

        if page.kind is PageKind.LISTING:
            self._handle_listing(page, frontier, quota)
        elif page.kind is PageKind.PRODUCT:
            await self._handle_product(page, quota, report)
        else:
            logger.debug("Skipping unclassified page %s", page.url)

    def _handle_listing(self, page: Page, frontier: CrawlFrontier, quota: QuotaController) -> None:
        if quota.reached:
            return
        links = extract_links(page.document, self.adapter.base_url, self.adapter.product_link_pattern)
        to_enqueue = links[: quota.remaining]
        added = frontier.enqueue(to_enqueue, PageKind.PRODUCT)
        logger.info("Enqueued %s product links from %s", added, page.url)

        # Only page further when this listing could not cover the remaining need.
        next_page = getattr(self.adapter, "next_page_url", None)
        if self.config.follow_pagination and next_page is not None and len(links) < quota.remaining:
            next_url = next_page(page.document, page.url)
            if next_url and frontier.enqueue([next_url], PageKind.LISTING):
                logger.info("Enqueued next listing page %s", next_url)

    async def _handle_product(self, page: Page, quota: QuotaController, report: CrawlReport) -> None:
        built: list[ProductRecord] = []

        def build() -> Optional[ProductRecord]:
            fields = extract_fields(
                page.document,
                currency_symbol=self.config.currency_symbol,
                rating_selectors=getattr(self.adapter, "rating_selectors", ()),
            )
            if not fields.is_complete:
                report.missed_count += 1
                logger.warning("Missing %s on %s, skipping save.", " and ".join(fields.missing), page.url)
                return None
            built.append(ProductRecord.from_fields(page.site, page.url, fields))
            return built[0]

        ordinal = await quota.commit(build, self.store_record)
        if ordinal is not None:
            logger.info("%s saved #%s: %s", page.site, ordinal, built[0].title)
        elif quota.reached:
            logger.debug("Quota reached before %s could be saved", page.url)

