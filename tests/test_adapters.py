from __future__ import annotations

import asyncio

import pytest

from shopcrawl.adapters.amazon import AmazonAdapter
from shopcrawl.adapters.base import PageKind
from shopcrawl.adapters.flipkart import FlipkartAdapter
from shopcrawl.adapters.registry import AdapterRegistry
from shopcrawl.utils.parsing import parse_html


def test_flipkart_search_url_and_classification() -> None:
    adapter = FlipkartAdapter()
    assert adapter.build_search_url("smart phone") == "https://www.flipkart.com/search?q=smart%20phone"
    assert adapter.classify("https://www.flipkart.com/search?q=mobile&page=2") is PageKind.LISTING
    assert adapter.classify("https://www.flipkart.com/apple-iphone/p/itm123?pid=X") is PageKind.PRODUCT
    assert adapter.classify("https://www.flipkart.com/phone/itm999") is PageKind.PRODUCT
    assert adapter.classify("https://www.flipkart.com/helpcentre") is PageKind.UNKNOWN
    assert adapter.classify("https://www.flipkart.com/searchlight-torch/p/itm1") is PageKind.PRODUCT


def test_flipkart_next_page_link() -> None:
    adapter = FlipkartAdapter()
    doc = parse_html(
        '<html><body><nav><a href="/search?q=mobile&page=1">1</a>'
        '<a href="/search?q=mobile&page=2"><span>Next</span></a></nav></body></html>'
    )
    url = "https://www.flipkart.com/search?q=mobile"
    assert adapter.next_page_url(doc, url) == "https://www.flipkart.com/search?q=mobile&page=2"
    assert adapter.next_page_url(parse_html("<html><body></body></html>"), url) is None


def test_amazon_search_url_and_classification() -> None:
    adapter = AmazonAdapter()
    assert adapter.build_search_url("mobile") == "https://www.amazon.in/s?k=mobile"
    assert adapter.classify("https://www.amazon.in/s?k=mobile&page=2") is PageKind.LISTING
    assert adapter.classify("https://www.amazon.in/Some-Phone/dp/B0ABC") is PageKind.PRODUCT
    assert adapter.classify("https://www.amazon.in/gp/help") is PageKind.UNKNOWN


def test_amazon_join_price() -> None:
    adapter = AmazonAdapter()
    assert adapter.join_price("9,999.", None) == "₹9,999"
    assert adapter.join_price(" 1,299 ", "50") == "₹1,299.50"
    assert adapter.join_price("", "00") is None
    assert AmazonAdapter(currency_symbol="$").join_price("15", "99") == "$15.99"


def test_amazon_card_conversion() -> None:
    adapter = AmazonAdapter()
    page_url = "https://www.amazon.in/s?k=mobile"
    card = adapter.card_from_raw(
        {"title": " Phone X ", "whole": "12,499.", "fraction": None, "rating": "4.1 out of 5 stars",
         "url": "/Phone-X/dp/B0X"},
        page_url,
    )
    assert card is not None
    assert card.url == "https://www.amazon.in/Phone-X/dp/B0X"
    assert card.fields.title == "Phone X"
    assert card.fields.price == "₹12,499"
    assert card.fields.rating == "4.1 out of 5 stars"

    assert adapter.card_from_raw({"title": "No price", "whole": None, "url": "/dp/B1"}, page_url) is None
    assert adapter.card_from_raw({"title": "No link", "whole": "10", "url": None}, page_url) is None


class FakePage:
    url = "https://www.amazon.in/s?k=mobile"

    def __init__(self, raw):
        self.raw = raw
        self.calls = []

    async def eval_on_selector_all(self, selector, script, arg):
        self.calls.append((selector, arg))
        return self.raw[:arg]


def test_amazon_read_cards_passes_limit_into_page() -> None:
    adapter = AmazonAdapter()
    page = FakePage(
        [
            {"title": "A", "whole": "100", "url": "/dp/A"},
            {"title": "B", "whole": None, "url": "/dp/B"},
            {"title": "C", "whole": "300", "url": "/dp/C"},
        ]
    )
    cards = asyncio.run(adapter.read_cards(page, 2))
    assert [c.fields.title for c in cards] == ["A"]
    assert page.calls == [(adapter.card_selector, 2)]


def test_registry_lookup_and_registration() -> None:
    registry = AdapterRegistry()
    assert registry.names == ["flipkart", "amazon"]
    assert isinstance(registry.get(" Flipkart "), FlipkartAdapter)
    with pytest.raises(ValueError):
        registry.get("ebay")

    class Custom(FlipkartAdapter):
        name = "custom"

    registry.register(Custom())
    assert registry.get("custom").label == "Flipkart"
