from __future__ import annotations

import csv
from pathlib import Path
from typing import List, Optional, Sequence

from ..adapters.base import ProductRecord
from ..config import BASE_COLUMNS


class CSVExporter:
    """
    Writes one row per product in the configured column order.
    ``append`` adds rows to an existing file; the header is only written into a new or empty file.
    """

    def __init__(self, columns: Optional[List[str]] = None) -> None:
        self.columns = list(columns or BASE_COLUMNS)

    def export(self, records: Sequence[ProductRecord], path: str, *, append: bool = False) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        needs_header = not append or not target.exists() or target.stat().st_size == 0
        with open(target, "a" if append else "w", encoding="utf-8", newline="") as f:
            w = csv.DictWriter(f, fieldnames=self.columns, extrasaction="ignore")
            if needs_header:
                w.writeheader()
            for record in records:
                row = record.to_dict()
                w.writerow({col: "" if row.get(col) is None else row[col] for col in self.columns})
