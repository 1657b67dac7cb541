from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from shopcrawl.engines import simple_engine

SEARCH_URL = "https://www.flipkart.com/search?q=mobile"


class FakeSession:
    closed = False

    async def close(self) -> None:
        self.closed = True


class FakeWeb:
    """Serves canned HTML in place of aiohttp and records every fetched URL."""

    def __init__(self) -> None:
        self.pages: Dict[str, Optional[str]] = {}
        self.fetched: List[str] = []

    async def fetch_text(self, session, url, **kwargs) -> Optional[str]:
        self.fetched.append(url)
        return self.pages.get(url)


@pytest.fixture
def web(monkeypatch) -> FakeWeb:
    fake = FakeWeb()
    monkeypatch.setattr(simple_engine, "create_session", FakeSession)
    monkeypatch.setattr(simple_engine, "fetch_text", fake.fetch_text)
    return fake


def listing_html(hrefs: List[str], next_href: Optional[str] = None) -> str:
    anchors = "".join(f'<div class="card"><a href="{href}">item</a></div>' for href in hrefs)
    nav = f'<nav><a href="{next_href}"><span>Next</span></a></nav>' if next_href else ""
    return f"<html><head><title>Search</title></head><body>{anchors}{nav}</body></html>"


def product_html(title: str, price: Optional[str]) -> str:
    price_div = f"<div class='price'>{price}</div>" if price else "<div>Currently unavailable</div>"
    return f"<html><head><title>{title} | Store</title></head><body><h1>{title}</h1>{price_div}</body></html>"
