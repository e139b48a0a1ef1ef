"""
risk_composer.py — Blend environmental signals into a per-region outbreak risk.

Three independent sub-scores, each in [0, 1]:

    • Vector-borne   (dengue-like)   from temperature, humidity, recent rain
    • Respiratory                    from the AQI category or PM2.5
    • Water-borne                    from the water-quality severity

═══════════════════════════════════════════════════════════════════════════
FORMULAS
═══════════════════════════════════════════════════════════════════════════

    S_vector = clamp01( (T − 24) / 10 × 0.35
                        + H / 100     × 0.45
                        + (rain > 0 ? 0.25 : 0) )

        T = temperature °C, H = relative humidity %. Mosquito activity
        climbs above ~24 °C; standing water after rain adds breeding sites.

    S_resp   = AQI_TABLE[round(aqi)]            if aqi ∈ {1 … 6}
             = clamp01( pm25 / 150 × 0.8 )      otherwise

    S_water  = water severity (already ∈ [0, 1])

    score    = max(S_vector, S_resp, S_water)

═══════════════════════════════════════════════════════════════════════════
LEVELS
═══════════════════════════════════════════════════════════════════════════

    score > 0.9   Critical
    score > 0.7   High
    score > 0.5   Medium
    otherwise     Low

Boundaries are strict: 0.5 is Low, 0.7 is Medium, 0.9 is High.

Primary threat is the category owning the maximum, checked water first,
then respiratory, then vector. When sub-scores tie (for example everything
unavailable, where water sits at its 0.25 Unknown default) water-borne
wins. Dashboard consumers rely on this order.

All functions here are pure; ``compute_risk`` is safe to call concurrently.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from backend.app.ingestion.models import PollutionReading, WeatherReading
from backend.app.risk.water_quality import WaterAssessment


# ═══════════════════════════════════════════════════════════════════════════
# Constants: Tunable Parameters
# ═══════════════════════════════════════════════════════════════════════════

VECTOR_TEMP_BASELINE_C = 24.0
VECTOR_TEMP_SPAN_C = 10.0
VECTOR_TEMP_WEIGHT = 0.35
VECTOR_HUMIDITY_WEIGHT = 0.45
VECTOR_RAIN_BONUS = 0.25

PM25_CEILING = 150.0
PM25_WEIGHT = 0.8

# US-EPA categorical index → respiratory sub-score
AQI_INDEX_SCORES: Dict[int, float] = {
    1: 0.2,    # Good
    2: 0.45,   # Moderate
    3: 0.65,   # Unhealthy for sensitive groups
    4: 0.8,    # Unhealthy
    5: 0.92,   # Very unhealthy
    6: 1.0,    # Hazardous
}

THRESHOLD_MEDIUM = 0.5
THRESHOLD_HIGH = 0.7
THRESHOLD_CRITICAL = 0.9

DRIVER_THRESHOLD = 0.5


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class ThreatCategory(str, Enum):
    WATER_BORNE = "Water-borne"
    RESPIRATORY = "Respiratory"
    VECTOR_BORNE = "Vector-borne"


class Driver(str, Enum):
    WEATHER = "Weather"
    AIR_QUALITY = "Air quality"
    WATER_QUALITY = "Water quality"


# ═══════════════════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RiskAssessment:
    """Per-region outcome of the composer."""
    vector: float
    respiratory: float
    water: float
    score: float
    level: RiskLevel
    primary_threat: ThreatCategory
    drivers: Tuple[Driver, ...] = field(default_factory=tuple)

    @staticmethod
    def as_percent(value: float) -> int:
        return int(math.floor(value * 100 + 0.5))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "riskScore": round(self.score, 3),
            "overallRisk": self.level.value,
            "riskLevel": self.level.value,
            "drivers": [d.value for d in self.drivers],
            "dengueRisk": self.as_percent(self.vector),
            "respiratoryRisk": self.as_percent(self.respiratory),
            "waterRisk": self.as_percent(self.water),
            "primaryThreat": self.primary_threat.value,
        }


# ═══════════════════════════════════════════════════════════════════════════
# Sub-scores
# ═══════════════════════════════════════════════════════════════════════════

def clamp01(value: float) -> float:
    """Clamp to [0, 1]; non-finite input maps to 0."""
    if not math.isfinite(value):
        return 0.0
    return max(0.0, min(1.0, value))


def vector_score(weather: Optional[WeatherReading]) -> float:
    temp = weather.temp if weather else 0.0
    humidity = weather.humidity if weather else 0.0
    rain = weather.has_recent_rain if weather else False

    return clamp01(
        (temp - VECTOR_TEMP_BASELINE_C) / VECTOR_TEMP_SPAN_C * VECTOR_TEMP_WEIGHT
        + humidity / 100.0 * VECTOR_HUMIDITY_WEIGHT
        + (VECTOR_RAIN_BONUS if rain else 0.0)
    )


def respiratory_score(pollution: Optional[PollutionReading]) -> float:
    if pollution is not None and pollution.us_epa_index in AQI_INDEX_SCORES:
        return AQI_INDEX_SCORES[pollution.us_epa_index]
    pm25 = pollution.pm25 if pollution else 0.0
    return clamp01(pm25 / PM25_CEILING * PM25_WEIGHT)


def classify_level(score: float) -> RiskLevel:
    """
    Map a score to a level using strict greater-than boundaries.

    >>> classify_level(0.5)
    <RiskLevel.LOW: 'Low'>
    >>> classify_level(0.90001)
    <RiskLevel.CRITICAL: 'Critical'>
    """
    if score > THRESHOLD_CRITICAL:
        return RiskLevel.CRITICAL
    if score > THRESHOLD_HIGH:
        return RiskLevel.HIGH
    if score > THRESHOLD_MEDIUM:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def primary_threat(vector: float, respiratory: float, water: float) -> ThreatCategory:
    top = max(vector, respiratory, water)
    if top == water:
        return ThreatCategory.WATER_BORNE
    if top == respiratory:
        return ThreatCategory.RESPIRATORY
    return ThreatCategory.VECTOR_BORNE


def collect_drivers(vector: float, respiratory: float, water: float) -> Tuple[Driver, ...]:
    drivers: List[Driver] = []
    if vector > DRIVER_THRESHOLD:
        drivers.append(Driver.WEATHER)
    if respiratory > DRIVER_THRESHOLD:
        drivers.append(Driver.AIR_QUALITY)
    if water > DRIVER_THRESHOLD:
        drivers.append(Driver.WATER_QUALITY)
    return tuple(drivers)


# ═══════════════════════════════════════════════════════════════════════════
# Core composer
# ═══════════════════════════════════════════════════════════════════════════

def compute_risk(
    weather: Optional[WeatherReading] = None,
    pollution: Optional[PollutionReading] = None,
    water: Optional[WaterAssessment] = None,
) -> RiskAssessment:
    """
    Compose the three sub-scores into a single RiskAssessment.

    Any input may be None; missing weather and pollution count as zero
    readings, missing water counts as Unknown (severity 0.25).

    Examples
    --------
    >>> r = compute_risk()
    >>> (r.score, r.level.value, r.primary_threat.value)
    (0.25, 'Low', 'Water-borne')
    """
    water_assessment = water if water is not None else WaterAssessment.unknown()

    s_vector = vector_score(weather)
    s_resp = respiratory_score(pollution)
    s_water = clamp01(water_assessment.severity)

    score = max(s_vector, s_resp, s_water)

    return RiskAssessment(
        vector=s_vector,
        respiratory=s_resp,
        water=s_water,
        score=score,
        level=classify_level(score),
        primary_threat=primary_threat(s_vector, s_resp, s_water),
        drivers=collect_drivers(s_vector, s_resp, s_water),
    )
