"""
water_quality.py — Water-quality classification and per-region record selection.

═══════════════════════════════════════════════════════════════════════════
THRESHOLD LADDERS
═══════════════════════════════════════════════════════════════════════════

Each recognised parameter has three bands. Parameters are tested in this
fixed order and the first match wins:

    Parameter            Good            Fair             Poor
    ─────────────────    ─────────────   ──────────────   ─────────
    Dissolved oxygen     ≥ 6 mg/L        ≥ 4 mg/L         < 4
    BOD                  ≤ 3 mg/L        ≤ 6 mg/L         > 6
    pH                   6.5 – 8.5       6.0 – 9.0        outside
    Turbidity            ≤ 5 NTU         ≤ 10 NTU         > 10
    (anything else)      ≤ 10            ≤ 20             > 20

Severity has three tiers only (0.15 / 0.45 / 0.8). Thresholds are
public-health rules of thumb, not a regulatory standard.

A missing record or an unparseable value is "Unknown" with severity 0.25.

═══════════════════════════════════════════════════════════════════════════
RECORD SELECTION
═══════════════════════════════════════════════════════════════════════════

The bulk dataset holds many station/parameter rows per state. For a region:

    1. exact state-name match      (normalised names)
    2. else district-name match
    3. else substring match either way on state name

Among the candidates the row with the highest
``severity × parameter weight`` is kept; ties keep the first row.
Weights favour the parameters most tied to water-borne disease:

    BOD, dissolved oxygen, coliform   1.0
    turbidity, pH                     0.8
    anything else                     0.6
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence

from backend.app.ingestion.models import WaterQualityRecord
from backend.app.ingestion.normalizer import normalize_place_name, parse_numeric_measurement


class WaterQualityLabel(str, Enum):
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"
    UNKNOWN = "Unknown"


SEVERITY: Dict[WaterQualityLabel, float] = {
    WaterQualityLabel.GOOD: 0.15,
    WaterQualityLabel.FAIR: 0.45,
    WaterQualityLabel.POOR: 0.8,
    WaterQualityLabel.UNKNOWN: 0.25,
}

# (good, fair) band edges per parameter
DO_THRESHOLDS = (6.0, 4.0)          # higher is better
BOD_THRESHOLDS = (3.0, 6.0)         # lower is better
PH_GOOD_RANGE = (6.5, 8.5)
PH_FAIR_RANGE = (6.0, 9.0)
TURBIDITY_THRESHOLDS = (5.0, 10.0)  # lower is better
GENERIC_THRESHOLDS = (10.0, 20.0)   # lower is better

WEIGHT_PRIMARY = 1.0
WEIGHT_SECONDARY = 0.8
WEIGHT_OTHER = 0.6

_DO_TOKEN_RE = re.compile(r"\bdo\b")
_PH_TOKEN_RE = re.compile(r"\bph\b")


class WaterParameter(str, Enum):
    DISSOLVED_OXYGEN = "dissolved_oxygen"
    BOD = "bod"
    PH = "ph"
    TURBIDITY = "turbidity"
    COLIFORM = "coliform"
    OTHER = "other"


@dataclass(frozen=True)
class WaterAssessment:
    label: WaterQualityLabel
    severity: float

    @classmethod
    def unknown(cls) -> "WaterAssessment":
        return cls(WaterQualityLabel.UNKNOWN, SEVERITY[WaterQualityLabel.UNKNOWN])


def identify_parameter(parameter: Optional[str]) -> WaterParameter:
    """Map a free-text parameter name to a known category (fixed priority)."""
    p = (parameter or "").strip().lower()
    if "dissolved oxygen" in p or _DO_TOKEN_RE.search(p):
        return WaterParameter.DISSOLVED_OXYGEN
    if "bod" in p or "biochemical oxygen" in p or "biological oxygen" in p:
        return WaterParameter.BOD
    if _PH_TOKEN_RE.search(p):
        return WaterParameter.PH
    if "turbidity" in p:
        return WaterParameter.TURBIDITY
    if "coliform" in p:
        return WaterParameter.COLIFORM
    return WaterParameter.OTHER


def _lower_is_better(value: float, good: float, fair: float) -> WaterQualityLabel:
    if value <= good:
        return WaterQualityLabel.GOOD
    if value <= fair:
        return WaterQualityLabel.FAIR
    return WaterQualityLabel.POOR


def classify_value(parameter: WaterParameter, value: float) -> WaterQualityLabel:
    """Apply the threshold ladder for ``parameter`` to a finite value."""
    if parameter is WaterParameter.DISSOLVED_OXYGEN:
        good, fair = DO_THRESHOLDS
        if value >= good:
            return WaterQualityLabel.GOOD
        if value >= fair:
            return WaterQualityLabel.FAIR
        return WaterQualityLabel.POOR

    if parameter is WaterParameter.BOD:
        return _lower_is_better(value, *BOD_THRESHOLDS)

    if parameter is WaterParameter.PH:
        if PH_GOOD_RANGE[0] <= value <= PH_GOOD_RANGE[1]:
            return WaterQualityLabel.GOOD
        if PH_FAIR_RANGE[0] <= value <= PH_FAIR_RANGE[1]:
            return WaterQualityLabel.FAIR
        return WaterQualityLabel.POOR

    if parameter is WaterParameter.TURBIDITY:
        return _lower_is_better(value, *TURBIDITY_THRESHOLDS)

    # Coliform has no dedicated ladder; it shares the generic one.
    return _lower_is_better(value, *GENERIC_THRESHOLDS)


def assess_water_quality(record: Optional[WaterQualityRecord]) -> WaterAssessment:
    """
    Classify a water record into a label and severity ∈ [0, 1].

    >>> assess_water_quality(WaterQualityRecord(quality_parameter="BOD", value="8")).label
    <WaterQualityLabel.POOR: 'Poor'>
    """
    if record is None:
        return WaterAssessment.unknown()

    value = parse_numeric_measurement(record.value)
    if not math.isfinite(value):
        return WaterAssessment.unknown()

    label = classify_value(identify_parameter(record.quality_parameter), value)
    return WaterAssessment(label, SEVERITY[label])


def parameter_weight(parameter: Optional[str]) -> float:
    kind = identify_parameter(parameter)
    if kind in (WaterParameter.BOD, WaterParameter.DISSOLVED_OXYGEN, WaterParameter.COLIFORM):
        return WEIGHT_PRIMARY
    if kind in (WaterParameter.TURBIDITY, WaterParameter.PH):
        return WEIGHT_SECONDARY
    return WEIGHT_OTHER


def score_water_record(record: WaterQualityRecord) -> float:
    """Rank a candidate record: more severe and more relevant scores higher."""
    return assess_water_quality(record).severity * parameter_weight(record.quality_parameter)


def fuzzy_name_match(a: str, b: str) -> bool:
    """Substring match in either direction on already-normalised names."""
    return bool(a) and bool(b) and (a in b or b in a)


def select_water_for_state(
    records: Sequence[WaterQualityRecord],
    state: str,
    *,
    matcher: Callable[[str, str], bool] = fuzzy_name_match,
) -> Optional[WaterQualityRecord]:
    """
    Pick the most relevant water record for a region, or None.

    ``matcher`` is only used for the last-resort fuzzy pass; it receives the
    normalised record state name and the normalised region name.
    """
    if not records:
        return None

    target = normalize_place_name(state)
    if not target:
        return None

    candidates: List[WaterQualityRecord] = [
        r for r in records if normalize_place_name(r.state_name) == target
    ]
    if not candidates:
        candidates = [
            r for r in records if normalize_place_name(r.district_name) == target
        ]
    if not candidates:
        candidates = [
            r for r in records if matcher(normalize_place_name(r.state_name), target)
        ]
    if not candidates:
        return None

    best = candidates[0]
    best_score = score_water_record(best)
    for record in candidates[1:]:
        score = score_water_record(record)
        if score > best_score:
            best, best_score = record, score
    return best
