from __future__ import annotations

from typing import Protocol, Sequence

from ..adapters.base import ProductRecord


class Exporter(Protocol):
    def export(self, records: Sequence[ProductRecord], path: str, *, append: bool = False) -> None:
        ...
