# study_planner/core/numbers.py
import math
from typing import Any, Optional, Union

Number = Union[int, float]


def finite_or(val: Any, default: Number) -> Number:
    """float(val) if it is a finite number, else `default`. A real 0 is kept."""
    if val is None or isinstance(val, bool):
        return default
    try:
        num = float(val)
    except (TypeError, ValueError):
        return default
    return num if math.isfinite(num) else default


def number_or(val: Any, default: Number) -> Number:
    """Like finite_or, but 0 also falls back to `default`."""
    return finite_or(val, default) or default


def as_int(num: Number) -> Number:
    return int(num) if float(num).is_integer() else num


def clamp(num: Number, lo: Number, hi: Number) -> Number:
    return max(lo, min(hi, num))


def clamp_score(val: Any, lo: Number = 0, hi: Number = 100) -> Optional[Number]:
    if val is None:
        return None
    return as_int(clamp(finite_or(val, 0), lo, hi))


def round_half_up(val: float) -> int:
    return int(math.floor(val + 0.5))
