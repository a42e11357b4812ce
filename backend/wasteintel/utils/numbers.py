"""
numbers.py — Numeric Helpers for Aggregations

Purpose:
- Round the way dashboard figures have always been displayed: half away from
  zero (2.345 → 2.35), not Python's banker's rounding.
- Coerce loosely typed values (None, "", "1,200", JSON numbers) to floats.
- Compute a percentage with a zero-denominator guard.

Usage:
    from wasteintel.utils.numbers import round2, percentage

    rate = round2(percentage(recovered, generated))
"""

import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

# Leading number of a cell such as "85%" or "12000t"
NUMBER_PREFIX = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)(e[+-]?\d+)?", re.IGNORECASE)


def round_to(value: Optional[float], places: int) -> float:
    """
    Round half away from zero to `places` decimals. None is treated as 0.
    """
    if value is None:
        return 0.0
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round2(value: Optional[float]) -> float:
    return round_to(value, 2)


def round_int(value: Optional[float]) -> int:
    """Whole-number rounding for tonnage totals."""
    if value is None:
        return 0
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def percentage(part: Optional[float], whole: Optional[float]) -> float:
    """
    part / whole * 100, or 0.0 when whole is missing or not positive.
    """
    if not whole or whole <= 0:
        return 0.0
    return (part or 0.0) / whole * 100


def to_float(value: Any, default: float = 0.0) -> float:
    """
    Best-effort numeric coercion.

    Rules:
    - None / empty string → default
    - Strings may contain thousands separators or spaces ("1,200 ")
    - Trailing units are ignored: "85%" → 85, "12,000 t" → 12000
    - No leading number → default
    """
    if value is None:
        return default
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else default
    text = str(value).replace(",", "").replace(" ", "").strip()
    if not text:
        return default
    match = NUMBER_PREFIX.match(text)
    if match is None:
        return default
    number = float(match.group(0))
    if not math.isfinite(number):
        return default
    return number
