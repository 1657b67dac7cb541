from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Protocol

from bs4 import BeautifulSoup


class PageKind(str, Enum):
    LISTING = "listing"
    PRODUCT = "product"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class FrontierEntry:
    url: str
    label: PageKind


@dataclass
class Page:
    """A fetched page, owned by the handler that fetched it."""

    url: str
    site: str
    kind: PageKind
    document: BeautifulSoup


@dataclass(frozen=True)
class ExtractedFields:
    title: Optional[str] = None
    price: Optional[str] = None
    rating: Optional[str] = None
    description: Optional[str] = None

    @property
    def missing(self) -> List[str]:
        return [name for name in ("title", "price") if not getattr(self, name)]

    @property
    def is_complete(self) -> bool:
        return not self.missing


@dataclass(frozen=True)
class CardResult:
    """One result card read in page context by a browser-rendered adapter."""

    url: str
    fields: ExtractedFields


@dataclass(frozen=True)
class ProductRecord:
    """A saved product. Title and price are always non-empty."""

    site: str
    title: str
    price: str
    url: str
    rating: Optional[str] = None
    description: Optional[str] = None
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if not (self.title or "").strip():
            raise ValueError(f"ProductRecord for {self.url} has an empty title")
        if not (self.price or "").strip():
            raise ValueError(f"ProductRecord for {self.url} has an empty price")

    @classmethod
    def from_fields(cls, site: str, url: str, fields: ExtractedFields) -> "ProductRecord":
        return cls(
            site=site,
            title=fields.title or "",
            price=fields.price or "",
            url=url,
            rating=fields.rating,
            description=fields.description,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "site": self.site,
            "title": self.title,
            "price": self.price,
            "url": self.url,
            "rating": self.rating,
            "description": self.description,
            "fetched_at": self.fetched_at.isoformat(),
        }


class SiteAdapter(Protocol):
    """
    Interface for site-specific knowledge.
    Engines own HTTP, queueing and the quota; adapters only describe the site.
    """

    name: str  # registry key, e.g. "flipkart"
    label: str  # value written to the "site" column
    base_url: str  # links found on listing pages are resolved against this
    engine: str  # dotted path of the crawl engine able to drive this site
    product_link_pattern: Pattern[str]

    def build_search_url(self, query: str) -> str:
        ...

    def classify(self, url: str) -> PageKind:
        ...
