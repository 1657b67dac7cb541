from __future__ import annotations

import math
import re
from typing import Optional, Union

Number = Union[int, float]

_INTEGER_PART = re.compile(r"\d[\d,]*")
_NON_ALNUM = re.compile(r"[^\w\s]|_")
_SPACES = re.compile(r"\s+")


def to_number(raw: Optional[str]) -> Number:
    """
    Convert a display price such as ``"₹14,500"`` into a comparable integer.

    Only the integer part is kept (``"₹9,999.50"`` -> ``9999``). Missing or
    unparseable prices map to ``math.inf`` so they always sort last.
    """
    if not raw:
        return math.inf
    match = _INTEGER_PART.search(raw)
    if not match:
        return math.inf
    return int(match.group(0).replace(",", ""))


def format_price(value: Number, currency_symbol: str = "₹") -> str:
    """Inverse of :func:`to_number` for non-negative integers."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("cannot format an unknown price")
    return f"{currency_symbol}{int(value):,}"


def normalize_title(raw: Optional[str]) -> str:
    """Dedup key for a product title; never meant for display."""
    lowered = (raw or "").lower()
    cleaned = _NON_ALNUM.sub("", lowered)
    return _SPACES.sub(" ", cleaned).strip()
