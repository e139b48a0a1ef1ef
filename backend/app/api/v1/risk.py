"""
FastAPI route: Outbreak risk composition for caller-supplied readings.

Runs the same composer as the aggregation pass, without fetching anything,
so dashboards and operators can explore "what if" conditions.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from backend.app.ingestion.models import PollutionReading, WaterQualityRecord, WeatherReading
from backend.app.risk.preventions import build_preventions
from backend.app.risk.risk_composer import (
    AQI_INDEX_SCORES,
    DRIVER_THRESHOLD,
    PM25_CEILING,
    PM25_WEIGHT,
    THRESHOLD_CRITICAL,
    THRESHOLD_HIGH,
    THRESHOLD_MEDIUM,
    VECTOR_HUMIDITY_WEIGHT,
    VECTOR_RAIN_BONUS,
    VECTOR_TEMP_BASELINE_C,
    VECTOR_TEMP_SPAN_C,
    VECTOR_TEMP_WEIGHT,
    compute_risk,
)
from backend.app.risk.water_quality import SEVERITY, assess_water_quality

router = APIRouter(prefix="/api/v1/risk", tags=["risk"])


# ---------------------------------------------------------------------------
# Request / Response Schemas
# ---------------------------------------------------------------------------

class WeatherIn(BaseModel):
    temp: float = Field(default=0.0, description="Temperature in °C", examples=[30.0])
    humidity: float = Field(default=0.0, ge=0.0, le=100.0, description="Relative humidity %", examples=[80.0])
    rain_last_3h: float = Field(default=0.0, ge=0.0, description="Recent precipitation in mm", examples=[2.5])


class PollutionIn(BaseModel):
    pm25: float = Field(default=0.0, ge=0.0, description="PM2.5 in µg/m³", examples=[95.0])
    pm10: float = Field(default=0.0, ge=0.0)
    us_epa_index: Optional[float] = Field(
        default=None, ge=0.0,
        description="US-EPA categorical index; rounded, and PM2.5 is used outside 1–6",
        examples=[4],
    )


class WaterIn(BaseModel):
    quality_parameter: str = Field(..., examples=["BOD"])
    value: str = Field(..., description="Raw reading, qualifiers allowed", examples=["<2.5"])


class RiskComputeRequest(BaseModel):
    """Readings to compose. Omitted sections count as unavailable."""
    weather: Optional[WeatherIn] = None
    pollution: Optional[PollutionIn] = None
    water: Optional[WaterIn] = None


class RiskComputeResponse(BaseModel):
    riskScore: float
    overallRisk: str
    riskLevel: str
    drivers: List[str]
    dengueRisk: int
    respiratoryRisk: int
    waterRisk: int
    primaryThreat: str
    waterQuality: str
    preventions: List[str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/compute",
    response_model=RiskComputeResponse,
    summary="Compose Outbreak Risk",
    description=(
        "Combines weather, air quality and water quality into vector-borne, "
        "respiratory and water-borne sub-scores, an overall level and "
        "prevention advice."
    ),
)
async def compute_outbreak_risk(req: RiskComputeRequest):
    weather = None
    if req.weather is not None:
        weather = WeatherReading.from_dict(req.weather.model_dump())

    pollution = None
    if req.pollution is not None:
        pollution = PollutionReading.from_dict({
            "pm25": req.pollution.pm25,
            "pm10": req.pollution.pm10,
            "usEpaIndex": req.pollution.us_epa_index,
        })

    water = None
    if req.water is not None:
        water = WaterQualityRecord(
            quality_parameter=req.water.quality_parameter,
            value=req.water.value,
        )
    water_assessment = assess_water_quality(water)

    result = compute_risk(weather, pollution, water_assessment)

    return {
        **result.to_dict(),
        "waterQuality": water_assessment.label.value,
        "preventions": build_preventions(result.score, result.level, result.primary_threat),
    }


@router.get(
    "/thresholds",
    summary="Get Risk Thresholds",
    description="Returns the composer's formula constants and level boundaries.",
)
async def get_thresholds() -> Dict[str, Any]:
    return {
        "levels": {
            "medium_above": THRESHOLD_MEDIUM,
            "high_above": THRESHOLD_HIGH,
            "critical_above": THRESHOLD_CRITICAL,
        },
        "vector": {
            "temp_baseline_c": VECTOR_TEMP_BASELINE_C,
            "temp_span_c": VECTOR_TEMP_SPAN_C,
            "temp_weight": VECTOR_TEMP_WEIGHT,
            "humidity_weight": VECTOR_HUMIDITY_WEIGHT,
            "rain_bonus": VECTOR_RAIN_BONUS,
            "description": "clamp01((T−24)/10·0.35 + H/100·0.45 + rain·0.25)",
        },
        "respiratory": {
            "aqi_index_scores": {str(k): v for k, v in AQI_INDEX_SCORES.items()},
            "pm25_ceiling": PM25_CEILING,
            "pm25_weight": PM25_WEIGHT,
        },
        "water_severity": {label.value: s for label, s in SEVERITY.items()},
        "driver_threshold": DRIVER_THRESHOLD,
    }
