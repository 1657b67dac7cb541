from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote, urlparse

from bs4 import BeautifulSoup

from .base import PageKind
from ..utils.parsing import absolutize


class FlipkartAdapter:
    """Server-rendered storefront: listing and product pages are plain HTML."""

    name = "flipkart"
    label = "Flipkart"
    base_url = "https://www.flipkart.com"
    engine = "shopcrawl.engines.simple_engine:SimpleCrawlEngine"
    product_link_pattern = re.compile(r"/p/|/itm|/product/", re.IGNORECASE)
    rating_selectors = ("div._3LWZlK", "div.XQDdHH")

    def build_search_url(self, query: str) -> str:
        return f"{self.base_url}/search?q={quote(query, safe='')}"

    def classify(self, url: str) -> PageKind:
        path = urlparse(url).path.lower()
        # Product slugs may themselves contain "/search".
        if self.product_link_pattern.search(path):
            return PageKind.PRODUCT
        if "/search" in path:
            return PageKind.LISTING
        return PageKind.UNKNOWN

    def next_page_url(self, doc: BeautifulSoup, url: str) -> Optional[str]:
        # The pager is a <nav> of numbered links followed by "Next".
        for a in doc.select("nav a[href]"):
            if a.get_text(" ", strip=True).lower().startswith("next"):
                return absolutize(a.get("href"), url)
        return None
