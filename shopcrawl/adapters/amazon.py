from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlparse

from .base import CardResult, ExtractedFields, PageKind
from ..utils.parsing import absolutize

logger = logging.getLogger(__name__)

# Runs inside the browser: one bulk read of the first `limit` result cards.
_READ_CARDS_JS = """
(boxes, limit) => boxes.slice(0, limit).map((box) => {
    const text = (selector) => {
        const el = box.querySelector(selector);
        return el && el.innerText ? el.innerText.trim() : null;
    };
    const link = box.querySelector('h2 a, a.a-link-normal.s-no-outline, a.a-link-normal');
    return {
        title: text('h2 span'),
        whole: text('span.a-price-whole'),
        fraction: text('span.a-price-fraction'),
        rating: text('span.a-icon-alt'),
        url: link ? link.href : null,
    };
})
"""


class AmazonAdapter:
    """
    Client-rendered storefront. Result cards are read in page context through
    Playwright; there is no separate product-page phase.
    """

    name = "amazon"
    label = "Amazon"
    base_url = "https://www.amazon.in"
    engine = "shopcrawl.engines.browser_engine:BrowserCrawlEngine"
    product_link_pattern = re.compile(r"/dp/|/gp/product/", re.IGNORECASE)
    card_selector = 'div.s-main-slot div[data-component-type="s-search-result"]'
    next_page_selector = "a.s-pagination-next"

    def __init__(self, currency_symbol: str = "₹") -> None:
        self.currency_symbol = currency_symbol

    def build_search_url(self, query: str) -> str:
        return f"{self.base_url}/s?k={quote(query, safe='')}"

    def classify(self, url: str) -> PageKind:
        path = urlparse(url).path
        if path == "/s" or path.startswith("/s/"):
            return PageKind.LISTING
        if self.product_link_pattern.search(path):
            return PageKind.PRODUCT
        return PageKind.UNKNOWN

    async def read_cards(self, page: Any, limit: int) -> List[CardResult]:
        raw = await page.eval_on_selector_all(self.card_selector, _READ_CARDS_JS, limit)
        cards: List[CardResult] = []
        for item in raw or []:
            card = self.card_from_raw(item, page.url)
            if card is not None:
                cards.append(card)
        return cards

    def card_from_raw(self, item: Dict[str, Any], page_url: str) -> Optional[CardResult]:
        title = (item.get("title") or "").strip() or None
        price = self.join_price(item.get("whole"), item.get("fraction"))
        url = absolutize(item.get("url"), page_url)
        fields = ExtractedFields(title=title, price=price, rating=(item.get("rating") or None))
        if not fields.is_complete or url is None:
            missing = fields.missing + ([] if url else ["url"])
            logger.warning("Missing %s on result card at %s, skipping save.", ", ".join(missing), page_url)
            return None
        return CardResult(url=url, fields=fields)

    def join_price(self, whole: Optional[str], fraction: Optional[str]) -> Optional[str]:
        whole = (whole or "").strip().rstrip(".").strip()
        if not whole:
            return None
        fraction = (fraction or "").strip()
        if fraction:
            return f"{self.currency_symbol}{whole}.{fraction}"
        return f"{self.currency_symbol}{whole}"

    async def next_page_url(self, page: Any) -> Optional[str]:
        link = await page.query_selector(self.next_page_selector)
        if link is None:
            return None
        return absolutize(await link.get_attribute("href"), page.url)
