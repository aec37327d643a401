"""
Input sanitization helpers shared by the health evaluator, rule engine,
ranker and prompt builders.

Exchange payloads arrive loosely typed: numbers as strings, NaN/Infinity,
missing keys, negative sizes. None of these helpers raise; each returns a
documented default instead.
"""

import math
import re
from typing import Any, Optional

_SYMBOL_PREFIX = re.compile(r"^cmt_", re.IGNORECASE)
_SYMBOL_QUOTE = re.compile(r"usdt$", re.IGNORECASE)


def to_float(value: Any) -> Optional[float]:
    """Coerce to float; None for missing, boolean or unparseable input."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return None


def finite_or(value: Any, default: float) -> float:
    """Finite float, else default (NaN, +/-inf, junk)."""
    number = to_float(value)
    if number is None or not math.isfinite(number):
        return default
    return number


def non_negative_or(value: Any, default: float) -> float:
    number = finite_or(value, default)
    return number if number >= 0 else default


def positive_or(value: Any, default: float) -> float:
    number = finite_or(value, default)
    return number if number > 0 else default


def optional_finite(value: Any) -> Optional[float]:
    """Finite float or None. Keeps 'unknown' distinct from zero."""
    number = to_float(value)
    if number is None or not math.isfinite(number):
        return None
    return number


def to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "y")
    return bool(value)


def safe_number(value: Any, decimals: int = 2, fallback: str = "N/A") -> str:
    number = optional_finite(value)
    if number is None:
        return fallback
    return f"{number:.{decimals}f}"


def safe_percent(value: Any, decimals: int = 2, include_sign: bool = False) -> str:
    number = optional_finite(value)
    if number is None:
        return "N/A"
    sign = "+" if include_sign and number >= 0 else ""
    return f"{sign}{number:.{decimals}f}%"


def display_symbol(symbol: Any) -> str:
    """
    Exchange symbol to display symbol.

    "cmt_btcusdt" -> "BTC", "ETHUSDT" -> "ETH". Anything that is not a
    non-empty string becomes "UNKNOWN".
    """
    if not isinstance(symbol, str) or not symbol.strip():
        return "UNKNOWN"
    cleaned = _SYMBOL_QUOTE.sub("", _SYMBOL_PREFIX.sub("", symbol.strip()))
    return cleaned.upper() or "UNKNOWN"
