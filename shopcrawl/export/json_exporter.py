from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from ..adapters.base import ProductRecord
from ..config import BASE_COLUMNS


class JSONExporter:
    """Writes a JSON array of product objects restricted to the configured columns."""

    def __init__(self, columns: Optional[List[str]] = None) -> None:
        self.columns = list(columns or BASE_COLUMNS)

    def export(self, records: Sequence[ProductRecord], path: str, *, append: bool = False) -> None:
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        rows: List[Dict[str, Any]] = []
        if append and target.exists() and target.stat().st_size > 0:
            with open(target, "r", encoding="utf-8") as f:
                rows = json.load(f)
            if not isinstance(rows, list):
                raise ValueError(f"{path} does not hold a JSON array; cannot append")
        for record in records:
            data = record.to_dict()
            rows.append({col: data.get(col) for col in self.columns})
        with open(target, "w", encoding="utf-8") as f:
            json.dump(rows, f, indent=2, ensure_ascii=False)
