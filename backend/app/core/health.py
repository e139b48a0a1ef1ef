"""
Health check aggregation — deep health probe for the service.

Checks:
    • Weather / air-quality provider credentials (weatherapi.com)
    • Water-quality provider credentials (data.gov.in)
    • Region catalogue integrity

Missing credentials are DEGRADED, not UNHEALTHY: the service still answers
with placeholder pollution readings and the simulation water dataset.
No upstream is contacted here, so probes stay fast and free of quota use.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from backend.app.core.config import settings

logger = logging.getLogger(__name__)

_start_time = time.monotonic()


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"  # partial functionality
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    name: str
    status: HealthStatus = HealthStatus.HEALTHY
    latency_ms: float = 0.0
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.message:
            d["message"] = self.message
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class HealthReport:
    status: HealthStatus = HealthStatus.HEALTHY
    timestamp: str = ""
    uptime_seconds: float = 0.0
    components: List[ComponentHealth] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "service": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "timestamp": self.timestamp,
            "uptime_seconds": round(self.uptime_seconds, 1),
            "components": [c.to_dict() for c in self.components],
        }


async def check_weather_provider() -> ComponentHealth:
    comp = ComponentHealth(name="weather_provider")
    start = time.monotonic()
    comp.details = {"base_url": settings.WEATHER_API_BASE_URL}
    if settings.has_weather_key:
        comp.message = "API key configured"
    else:
        comp.status = HealthStatus.DEGRADED
        comp.message = "WEATHER_API_KEY not set; weather unavailable, pollution placeholders"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_water_provider() -> ComponentHealth:
    comp = ComponentHealth(name="water_provider")
    start = time.monotonic()
    comp.details = {
        "base_url": settings.WATER_API_BASE_URL,
        "resource_id": settings.WATER_RESOURCE_ID,
        "max_records": settings.WATER_PAGE_LIMIT * settings.WATER_MAX_PAGES,
    }
    if settings.has_water_key:
        comp.message = "API key configured"
    else:
        comp.status = HealthStatus.DEGRADED
        comp.message = "WATER_API_KEY not set; serving simulation dataset"
    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def check_region_catalogue() -> ComponentHealth:
    """Every monitored region must have a centroid for pollution lookups."""
    from backend.app.spatial.regions import MONITORED_REGIONS

    comp = ComponentHealth(name="region_catalogue")
    start = time.monotonic()

    missing = [r.name for r in MONITORED_REGIONS if r.centroid is None]
    comp.details = {"regions": len(MONITORED_REGIONS), "without_centroid": missing}
    if not MONITORED_REGIONS:
        comp.status = HealthStatus.UNHEALTHY
        comp.message = "No regions configured"
    elif missing:
        comp.status = HealthStatus.DEGRADED
        comp.message = f"{len(missing)} region(s) fall back to name lookups"
    else:
        comp.message = f"{len(MONITORED_REGIONS)} regions loaded"

    comp.latency_ms = (time.monotonic() - start) * 1000
    return comp


async def run_health_check() -> HealthReport:
    """Run all health checks and aggregate into a report."""
    report = HealthReport(
        timestamp=datetime.now(timezone.utc).isoformat(),
        uptime_seconds=time.monotonic() - _start_time,
    )

    for check in (check_weather_provider, check_water_provider, check_region_catalogue):
        report.components.append(await check())

    statuses = [c.status for c in report.components]
    if HealthStatus.UNHEALTHY in statuses:
        report.status = HealthStatus.UNHEALTHY
    elif HealthStatus.DEGRADED in statuses:
        report.status = HealthStatus.DEGRADED
    else:
        report.status = HealthStatus.HEALTHY

    if report.status is not HealthStatus.HEALTHY:
        logger.debug("Health check %s", report.status.value)

    return report
