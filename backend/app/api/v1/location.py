"""
FastAPI route: Resolve a coordinate to the nearest monitored state / UT.
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, Field

from backend.app.core.errors import NotFoundError
from backend.app.spatial.regions import find_nearest_state

router = APIRouter(prefix="/api/v1/location", tags=["location"])


class LocationRequest(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0, description="Latitude in decimal degrees", examples=[22.5726])
    lng: float = Field(..., ge=-180.0, le=180.0, description="Longitude in decimal degrees", examples=[88.3639])


class LocationResponse(BaseModel):
    ok: bool = True
    state: str


@router.post(
    "/state",
    response_model=LocationResponse,
    summary="Nearest State",
    description="Great-circle nearest state / UT by centroid distance.",
)
async def resolve_state(req: LocationRequest):
    state = find_nearest_state(req.lat, req.lng)
    if state is None:
        raise NotFoundError("state", lat=req.lat, lng=req.lng)
    return {"ok": True, "state": state}
