"""
FastAPI route: One-region digest with prevention advice.

Runs a full aggregation pass and extracts the requested region, so the
digest always agrees with ``/api/v1/disease-data`` at the same instant.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from backend.app.core.errors import NotFoundError, ValidationError
from backend.app.risk.aggregator import OutbreakAggregator, get_aggregator
from backend.app.risk.preventions import build_preventions

router = APIRouter(prefix="/api/v1/digest", tags=["digest"])


class StateDigestResponse(BaseModel):
    ok: bool = True
    updatedAt: str
    state: str
    riskScore: float
    overallRisk: str
    primaryThreat: str
    environmentalFactors: Dict[str, Any]
    preventions: List[str]


@router.get(
    "/state",
    response_model=StateDigestResponse,
    summary="State Digest",
    description="Current risk, environmental factors and prevention advice for one state / UT.",
)
async def get_state_digest(
    state: Optional[str] = Query(default=None, description="State or UT name", examples=["Kerala"]),
    aggregator: OutbreakAggregator = Depends(get_aggregator),
):
    name = (state or "").strip()
    if not name:
        raise ValidationError("Query parameter 'state' is required", field="state")

    report = await aggregator.aggregate()
    snapshot = report.find_state(name)
    if snapshot is None:
        raise NotFoundError("State", state=name)

    risk = snapshot.risk
    return {
        "ok": True,
        "updatedAt": report.updated_at.isoformat(),
        "state": snapshot.state,
        "riskScore": round(risk.score, 3),
        "overallRisk": risk.level.value,
        "primaryThreat": risk.primary_threat.value,
        "environmentalFactors": snapshot.environmental_factors(),
        "preventions": build_preventions(risk.score, risk.level, risk.primary_threat),
    }
