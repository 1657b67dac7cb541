from __future__ import annotations

from typing import Callable, Dict, List, Optional

from ..adapters.base import ProductRecord
from ..utils.pricing import normalize_title, to_number


class ResultSink:
    """
    Accumulates saved records for export.

    Not locked: ``add`` is only called from inside ``QuotaController.commit``.
    With ``dedup`` on, titles are compared by their normalized form and
    ``policy`` decides whether the first or the last duplicate is kept.
    """

    def __init__(
        self,
        dedup: bool = False,
        policy: str = "first",
        listener: Optional[Callable[[ProductRecord], None]] = None,
    ) -> None:
        if policy not in ("first", "last"):
            raise ValueError(f"unknown dedup policy {policy!r}")
        self.dedup = dedup
        self.policy = policy
        self.listener = listener
        self._records: List[ProductRecord] = []
        self._index: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: ProductRecord) -> bool:
        """
        Returns True when the record is new, False for a duplicate.
        If the listener raises, the record is not kept.
        """
        key = None
        if self.dedup:
            key = normalize_title(record.title)
            position = self._index.get(key)
            if position is not None:
                if self.policy == "last":
                    self._records[position] = record
                return False

        if self.listener is not None:
            self.listener(record)
        if key is not None:
            self._index[key] = len(self._records)
        self._records.append(record)
        return True

    def export_all(self) -> List[ProductRecord]:
        return list(self._records)

    def by_price(self) -> List[ProductRecord]:
        """Cheapest first; records with unknown prices go last."""
        return sorted(self._records, key=lambda r: to_number(r.price))
