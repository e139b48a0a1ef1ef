"""
Public-facing prevention advice for a region's dominant threat.

Five lines per threat category. The fourth line escalates when the region's
risk is intense (score above 0.7, or level High/Critical).
"""

from __future__ import annotations

from typing import List, Optional, Union

from backend.app.risk.risk_composer import (
    THRESHOLD_HIGH,
    RiskLevel,
    ThreatCategory,
    clamp01,
)

_INTENSE_LEVELS = {RiskLevel.HIGH.value, RiskLevel.CRITICAL.value}


def is_intense(risk: float, level: Union[RiskLevel, str, None]) -> bool:
    level_value = level.value if isinstance(level, RiskLevel) else (level or "")
    return clamp01(risk) > THRESHOLD_HIGH or level_value in _INTENSE_LEVELS


def build_preventions(
    risk: float,
    level: Union[RiskLevel, str, None],
    primary_threat: Union[ThreatCategory, str, None],
) -> List[str]:
    """
    Return prevention advice for the threat, most important first.

    Threats are matched loosely ("water" / "resp"); anything else gets the
    vector-borne advice.

    >>> build_preventions(0.3, "Low", "Water-borne")[0]
    'Drink only boiled/filtered water; avoid untreated water sources.'
    """
    threat = _threat_text(primary_threat).lower()
    intense = is_intense(risk, level)

    if "water" in threat:
        return [
            "Drink only boiled/filtered water; avoid untreated water sources.",
            "Wash hands with soap regularly, especially before eating and after toilet use.",
            "Avoid raw/unsafe street food; eat freshly cooked hot meals.",
            "Keep ORS ready and seek medical care quickly for diarrhea/dehydration symptoms."
            if intense else "Keep ORS available and monitor symptoms early.",
            "Ensure safe sanitation and disinfect high-touch surfaces at home.",
        ]

    if "resp" in threat:
        return [
            "Improve ventilation indoors; avoid crowded poorly ventilated places.",
            "Wear a mask in crowded indoor areas if you have symptoms or risk is elevated.",
            "Practice hand hygiene and avoid touching face after public contact.",
            "If fever/breathing issues occur, seek medical care promptly and isolate."
            if intense else "If fever/cough persists, seek medical advice and rest.",
            "Keep children and seniors up to date with recommended vaccines where available.",
        ]

    return [
        "Use mosquito repellent and wear long sleeves in the evening/night.",
        "Remove standing water (coolers, pots, buckets) to reduce mosquito breeding.",
        "Use bed nets/screens; keep doors/windows closed when possible.",
        "Seek medical care quickly for high fever, rash, or severe body aches."
        if intense else "Monitor symptoms and get tested early if fever develops.",
        "Maintain clean surroundings and coordinate community vector control where possible.",
    ]


def _threat_text(threat: Optional[Union[ThreatCategory, str]]) -> str:
    if isinstance(threat, ThreatCategory):
        return threat.value
    return threat or "Unknown"
