"""
FastAPI route: Per-region outbreak risk for every monitored state / UT.

Every request runs a fresh aggregation pass against the upstream providers.
Upstream failures degrade individual fields; the endpoint itself does not
fail because of them.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from backend.app.risk.aggregator import OutbreakAggregator, get_aggregator

router = APIRouter(prefix="/api/v1", tags=["disease-data"])


@router.get(
    "/disease-data",
    summary="Outbreak Risk by Region",
    description=(
        "Aggregates weather, air quality and water quality for every monitored "
        "region and returns per-region risk scores, levels, primary threats "
        "and provenance metadata."
    ),
)
async def get_disease_data(
    aggregator: OutbreakAggregator = Depends(get_aggregator),
) -> Dict[str, Any]:
    report = await aggregator.aggregate()
    return report.to_dict()
