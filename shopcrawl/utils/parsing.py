from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, Sequence
from urllib.parse import urljoin, urlparse, urlunparse

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import Comment, Doctype, ProcessingInstruction

from ..adapters.base import ExtractedFields

_SKIPPED_TAGS = {"script", "style", "noscript", "template"}
_NON_TEXT = (Comment, Doctype, ProcessingInstruction)
_BARE_AMOUNT = re.compile(r"\.?\d")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def normalize_url(url: str) -> str:
    """
    Normalize URL by removing the fragment.
    """
    parts = list(urlparse(url))
    parts[5] = ""  # strip fragment
    return urlunparse(parts)


def absolutize(href: Optional[str], base_url: str) -> Optional[str]:
    """
    Resolve ``href`` against ``base_url``. Returns None for anything that does not
    end up as an http(s) URL with a host.
    """
    if not href or not href.strip():
        return None
    try:
        joined = urljoin(base_url, href.strip())
        parsed = urlparse(joined)
        # Accessing .port validates it and raises on garbage like ":99999".
        parsed.port
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return normalize_url(joined)


def extract_links(doc: BeautifulSoup, base_url: str, pattern: Pattern[str]) -> List[str]:
    """
    Absolute links whose href matches ``pattern``, in document order, without repeats.
    Malformed links are dropped silently.
    """
    out: List[str] = []
    seen = set()
    for a in doc.select("a[href]"):
        href = a.get("href")
        if not href or not pattern.search(href):
            continue
        url = absolutize(href, base_url)
        if url is None or url in seen:
            continue
        seen.add(url)
        out.append(url)
    return out


# ---- Field extraction --------------------------------------------------------


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = " ".join(value.split())
    return value or None


def _stripped(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


def _meta_attr(doc: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = doc.find("meta", attrs=attrs)
    if not tag:
        return None
    content = tag.get("content")
    return content if isinstance(content, str) else None


def _meta_content(doc: BeautifulSoup, **attrs: str) -> Optional[str]:
    return _clean(_meta_attr(doc, **attrs))


def extract_title(doc: BeautifulSoup) -> Optional[str]:
    """
    First <h1>, then og:title, then <title>. Text is taken as-is and only
    trimmed, so ``<h1>Galaxy<span>S24</span></h1>`` gives ``"GalaxyS24"``.
    """
    h1 = doc.find("h1")
    if h1:
        text = _stripped(h1.get_text())
        if text:
            return text

    og_title = _stripped(_meta_attr(doc, property="og:title"))
    if og_title:
        return og_title

    title = doc.find("title")
    if title:
        return _stripped(title.get_text())
    return None


def currency_pattern(currency_symbol: str) -> Pattern[str]:
    return re.compile(re.escape(currency_symbol) + r"\d+(?:,\d+)*(?:\.\d+)?")


def _own_text(tag: Tag) -> str:
    return "".join(
        str(child) for child in tag.children
        if isinstance(child, NavigableString) and not isinstance(child, _NON_TEXT)
    )


def _iter_text_elements(doc: BeautifulSoup) -> Iterable[Tag]:
    # Pre-order walk of <body>, pruning script-like subtrees as they are met.
    stack: List[Tag] = [doc.body or doc]
    while stack:
        tag = stack.pop()
        if tag.name in _SKIPPED_TAGS:
            continue
        yield tag
        stack.extend(reversed([child for child in tag.children if isinstance(child, Tag)]))


def extract_price(doc: BeautifulSoup, currency_symbol: str = "₹") -> Optional[str]:
    """
    Price meta tag, then the first element whose own text holds a currency amount,
    then a ``data-price``/``price`` attribute.
    """
    meta_price = _meta_content(doc, itemprop="price") or _meta_content(doc, property="product:price:amount")
    if meta_price:
        # A bare amount gets the symbol; "INR 999" already names its currency.
        if currency_symbol not in meta_price and _BARE_AMOUNT.match(meta_price):
            return f"{currency_symbol}{meta_price}"
        return meta_price

    pattern = currency_pattern(currency_symbol)
    for tag in _iter_text_elements(doc):
        text = _own_text(tag)
        if currency_symbol not in text:
            continue
        match = pattern.search(text)
        if match:
            return match.group(0)

    for attr in ("data-price", "price"):
        tag = doc.find(attrs={attr: True})
        if tag:
            value = _clean(tag.get(attr))
            if value:
                return value
    return None


def extract_rating(doc: BeautifulSoup, selectors: Sequence[str] = ()) -> Optional[str]:
    tag = doc.find(attrs={"itemprop": "ratingValue"})
    if tag:
        value = _clean(tag.get("content")) or _clean(tag.get_text(" "))
        if value:
            return value
    for selector in selectors:
        node = doc.select_one(selector)
        if node:
            value = _clean(node.get_text(" "))
            if value:
                return value
    return None


def extract_description(doc: BeautifulSoup) -> Optional[str]:
    return _meta_content(doc, name="description") or _meta_content(doc, property="og:description")


def extract_fields(
    doc: BeautifulSoup,
    *,
    currency_symbol: str = "₹",
    rating_selectors: Sequence[str] = (),
) -> ExtractedFields:
    return ExtractedFields(
        title=extract_title(doc),
        price=extract_price(doc, currency_symbol),
        rating=extract_rating(doc, rating_selectors),
        description=extract_description(doc),
    )
