"""Consolidated utility functions for the finance module."""
import math
from typing import Any, Dict, Iterable, Optional


def get_nested(d: Dict[str, Any], path: Iterable[str], default: Any = None) -> Any:
    """Safely get nested dict value using dot-notation path."""
    result = d
    for key in path:
        if not isinstance(result, dict):
            return default
        result = result.get(key, default)
        if result is default:
            return default
    return result


def as_float(v: Any, default: Optional[float] = None) -> Optional[float]:
    """Safely convert value to float with fallback."""
    if v is None:
        return default
    try:
        return float(v)
    except (ValueError, TypeError):
        return default


def as_int(v: Any, default: Optional[int] = None) -> Optional[int]:
    """Safely convert value to int with fallback."""
    if v is None:
        return default
    try:
        return int(v)
    except (ValueError, TypeError):
        return default


_TRUE_STRINGS = ("true", "yes", "sim", "1")
_FALSE_STRINGS = ("false", "no", "nao", "não", "0")


def as_bool(v: Any, default: Optional[bool] = None) -> Optional[bool]:
    """Parse a config flag; strings like "false" are not truthy here."""
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        text = v.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    return default


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ties toward +infinity.

    This is the rounding used throughout the proposal figures (and the one
    browsers apply), so 2.5 -> 3 and -2.5 -> -2, unlike built-in round().
    """
    return int(math.floor(float(value) + 0.5))


def round2(value: float) -> float:
    """Round a currency/energy amount to 2 decimals, half-up."""
    return math.floor(float(value) * 100.0 + 0.5) / 100.0


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))
