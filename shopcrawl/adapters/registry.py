from __future__ import annotations

import logging
from typing import Dict, List
from importlib import metadata

from .base import SiteAdapter
from .amazon import AmazonAdapter
from .flipkart import FlipkartAdapter

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """
    Registry of site adapters keyed by name.
    Supports built-ins, config-defined dotted classes, and entry-point plugins.
    """
    def __init__(self, currency_symbol: str = "₹") -> None:
        self._adapters: Dict[str, SiteAdapter] = {}
        self.register(FlipkartAdapter())
        self.register(AmazonAdapter(currency_symbol=currency_symbol))

    # ---- Introspection / Management ----

    def register(self, adapter: SiteAdapter) -> None:
        # A later registration under the same name replaces the earlier one.
        self._adapters[adapter.name] = adapter

    @property
    def adapters(self) -> List[SiteAdapter]:
        return list(self._adapters.values())

    @property
    def names(self) -> List[str]:
        return list(self._adapters)

    def get(self, name: str) -> SiteAdapter:
        try:
            return self._adapters[name.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown site {name!r}; known sites: {', '.join(self._adapters)}") from None

    # ---- Discovery ----

    def discover_entry_points(self, group: str = "shopcrawl.adapters") -> int:
        """
        Discover third-party adapters installed as entry points.
        Returns count of newly registered adapters.
        """
        added = 0
        for ep in metadata.entry_points().select(group=group):
            try:
                adapter_cls = ep.load()
                self.register(adapter_cls())
            except Exception as exc:  # plugins are optional; a broken one is skipped
                logger.warning("Failed to load adapter entry point %s: %r", ep.name, exc)
                continue
            added += 1
        return added
