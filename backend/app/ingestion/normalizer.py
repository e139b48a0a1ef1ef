"""
normalizer.py — Tolerant parsing of heterogeneous upstream measurements.

Upstream datasets are inconsistent about how they report values:

    "6.8"      plain number
    "<0.5"     below detection, with an inequality qualifier
    "1,250"    thousands separator
    "BDL"      below detection limit, no number at all
    "N/A"      missing
    null       missing

Nothing in this module raises. Numeric parsers return NaN (or a caller
supplied default) and callers are expected to check ``math.isfinite``.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

# Tokens that mean "no usable number" regardless of case
NON_NUMERIC_TOKENS = frozenset({
    "na", "n/a", "n.a.", "n.a",
    "null", "none", "nil",
    "bdl", "b.d.l.", "b.d.l",
    "nd", "n.d.", "n.d",
    "-", "--", "---",
})

_QUALIFIER_RE = re.compile(r"^(<=|>=|≤|≥|<|>)\s*")
_PLACE_NAME_STRIP_RE = re.compile(r"[^a-z0-9]+")
# Plain ASCII decimal or exponent form; no underscores, no non-ASCII digits
_NUMBER_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)


def parse_numeric_measurement(raw: Any) -> float:
    """
    Parse a raw measurement into a float, or NaN when it is not a number.

    Examples
    --------
    >>> parse_numeric_measurement("<0.5")
    0.5
    >>> parse_numeric_measurement(">= 1,250")
    1250.0
    >>> math.isnan(parse_numeric_measurement("BDL"))
    True
    """
    if raw is None or isinstance(raw, bool):
        return math.nan

    if isinstance(raw, (int, float)):
        value = float(raw)
        return value if math.isfinite(value) else math.nan

    text = str(raw).strip()
    if not text or text.lower() in NON_NUMERIC_TOKENS:
        return math.nan

    text = _QUALIFIER_RE.sub("", text, count=1).replace(",", "").strip()
    if not _NUMBER_RE.match(text):
        return math.nan
    value = float(text)
    return value if math.isfinite(value) else math.nan


def to_number(raw: Any, default: float = 0.0) -> float:
    """Parse an upstream JSON field, falling back to ``default``."""
    value = parse_numeric_measurement(raw)
    return value if math.isfinite(value) else default


def parse_aqi_index(raw: Any) -> Optional[int]:
    """
    Round a categorical AQI index half-up to the nearest integer.

    Range checking is left to the risk composer, which falls back to PM2.5
    for anything outside its lookup table.
    """
    value = parse_numeric_measurement(raw)
    if not math.isfinite(value):
        return None
    return int(math.floor(value + 0.5))


def normalize_place_name(name: Optional[str]) -> str:
    """
    Canonical form for comparing region names across datasets.

    >>> normalize_place_name("Jammu & Kashmir")
    'jammuandkashmir'
    """
    if not name:
        return ""
    lowered = str(name).lower().replace("&", "and")
    return _PLACE_NAME_STRIP_RE.sub("", lowered)
