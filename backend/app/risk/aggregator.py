"""
aggregator.py — Regional data fetcher and aggregation pass orchestration.

One aggregation pass:

    1. Fetch the bulk water-quality dataset ONCE (shared, read-only).
    2. Fan out over all regions with a bounded worker pool:
         for each region, concurrently
            • weather by region name
            • pollution by centroid (by name when no centroid is known)
         then pick the region's water record, classify it, compose risk.
    3. Assemble per-region snapshots plus provenance metadata.

═══════════════════════════════════════════════════════════════════════════
BOUNDED WORKER POOL
═══════════════════════════════════════════════════════════════════════════

C workers (C = min(concurrency, N)) share a cursor over the region list.
Each worker claims the next unclaimed index, awaits that region, writes the
result at the claimed index and loops until the cursor runs off the end.
The pool caps simultaneous outbound connections; output order always equals
input order, whatever the completion order.

The cursor needs no lock: asyncio only switches tasks at ``await`` points
and the claim/increment happens between them.

═══════════════════════════════════════════════════════════════════════════
FAILURE ISOLATION
═══════════════════════════════════════════════════════════════════════════

Every upstream call goes through ``settle``, which applies a per-call
timeout and converts any failure into None (logged at WARNING):

    weather failure     → weather None       (vector score from zeros)
    pollution failure   → pollution None     (respiratory score from zeros)
    water failure       → empty dataset      (every region "Unknown")

No retries happen here. The pass always returns one snapshot per region.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import (
    Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar,
)

from backend.app.core.config import settings
from backend.app.ingestion.models import PollutionReading, WaterQualityRecord, WeatherReading
from backend.app.ingestion.normalizer import normalize_place_name
from backend.app.ingestion.providers import (
    PollutionProvider,
    WaterQualityProvider,
    WeatherProvider,
)
from backend.app.risk.risk_composer import RiskAssessment, compute_risk
from backend.app.risk.water_quality import (
    WaterAssessment,
    assess_water_quality,
    fuzzy_name_match,
    select_water_for_state,
)
from backend.app.spatial.regions import MONITORED_REGIONS, Region

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


# ═══════════════════════════════════════════════════════════════════════════
# Concurrency helpers
# ═══════════════════════════════════════════════════════════════════════════

async def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int,
) -> List[R]:
    """
    Run ``worker`` over ``items`` with at most ``concurrency`` in flight.

    Results are returned in input order. ``concurrency`` below 1 is
    treated as 1. Exceptions raised by ``worker`` propagate.
    """
    results: List[Any] = [None] * len(items)
    cursor = 0

    async def _drain() -> None:
        nonlocal cursor
        while cursor < len(items):
            index = cursor
            cursor += 1
            results[index] = await worker(items[index])

    pool_size = min(max(1, concurrency), len(items))
    await asyncio.gather(*(_drain() for _ in range(pool_size)))
    return results


async def settle(
    awaitable: Awaitable[T],
    *,
    timeout: Optional[float],
    provider: str,
    state: Optional[str] = None,
) -> Optional[T]:
    """Await an upstream call, turning timeouts and failures into None."""
    try:
        return await asyncio.wait_for(awaitable, timeout)
    except asyncio.TimeoutError:
        logger.warning(
            "%s call timed out after %.1fs", provider, timeout or 0.0,
            extra={"provider": provider, "state": state},
        )
    except Exception as exc:
        logger.warning(
            "%s call failed: %s", provider, exc,
            extra={"provider": provider, "state": state},
        )
    return None


# ═══════════════════════════════════════════════════════════════════════════
# Data Structures
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RegionSnapshot:
    """Everything computed for one region in one pass."""
    region: Region
    weather: Optional[WeatherReading]
    pollution: Optional[PollutionReading]
    water_record: Optional[WaterQualityRecord]
    water: WaterAssessment
    risk: RiskAssessment

    @property
    def state(self) -> str:
        return self.region.name

    def environmental_factors(self) -> Dict[str, Any]:
        return {
            "temp": self.weather.temp if self.weather else 0.0,
            "humidity": self.weather.humidity if self.weather else 0.0,
            "rain": self.weather.has_recent_rain if self.weather else False,
            "pm25": self.pollution.pm25 if self.pollution else 0.0,
            "aqiUS": self.pollution.us_epa_index if self.pollution else None,
            "waterQuality": self.water.label.value,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            **self.risk.to_dict(),
            "environmentalFactors": self.environmental_factors(),
            "weather": self.weather.to_dict() if self.weather else None,
            "pollution": self.pollution.to_dict() if self.pollution else None,
            "water": self.water_record.to_dict() if self.water_record else None,
            # Case counts come from a separate reporting feed
            "cases": 0,
            "deaths": 0,
        }


@dataclass(frozen=True)
class AggregationMeta:
    """Provenance: which upstreams were live and how much water data arrived."""
    weather_api_key_present: bool
    water_api_key_present: bool
    pollution_source: str
    water_source: str
    water_records: int
    region_count: int
    concurrency: int
    duration_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weatherApiKeyPresent": self.weather_api_key_present,
            "waterApiKeyPresent": self.water_api_key_present,
            "pollutionSource": self.pollution_source,
            "waterSource": self.water_source,
            "waterRecords": self.water_records,
            "regionCount": self.region_count,
            "concurrency": self.concurrency,
            "durationMs": self.duration_ms,
        }


@dataclass(frozen=True)
class AggregationReport:
    updated_at: datetime
    states: List[RegionSnapshot]
    meta: AggregationMeta

    def find_state(self, name: str) -> Optional[RegionSnapshot]:
        """Look up a region by name, ignoring case and punctuation."""
        target = normalize_place_name(name)
        if not target:
            return None
        for snapshot in self.states:
            if normalize_place_name(snapshot.state) == target:
                return snapshot
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "updatedAt": self.updated_at.isoformat(),
            "states": [s.to_dict() for s in self.states],
            "meta": self.meta.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════════════
# Aggregator
# ═══════════════════════════════════════════════════════════════════════════

class OutbreakAggregator:
    """
    Computes a fresh risk snapshot for every monitored region.

    Usage:
        aggregator = build_default_aggregator()
        report = await aggregator.aggregate()
        for snapshot in report.states:
            print(snapshot.state, snapshot.risk.level.value)
    """

    def __init__(
        self,
        weather_provider: WeatherProvider,
        pollution_provider: PollutionProvider,
        water_provider: WaterQualityProvider,
        *,
        regions: Sequence[Region] = MONITORED_REGIONS,
        concurrency: int = settings.AGGREGATION_CONCURRENCY,
        call_timeout: Optional[float] = settings.PROVIDER_TIMEOUT_SECONDS,
        matcher: Callable[[str, str], bool] = fuzzy_name_match,
    ):
        self.weather_provider = weather_provider
        self.pollution_provider = pollution_provider
        self.water_provider = water_provider
        self.regions = tuple(regions)
        self.concurrency = max(1, concurrency)
        self.call_timeout = call_timeout
        self.matcher = matcher

    async def close(self) -> None:
        for provider in (self.weather_provider, self.pollution_provider, self.water_provider):
            await provider.close()

    async def fetch_water_dataset(self) -> List[WaterQualityRecord]:
        """Fetch the bulk dataset once; an empty list on failure."""
        records = await settle(
            self.water_provider.fetch_dataset(),
            timeout=self._water_timeout(),
            provider=self.water_provider.service_name,
        )
        return records or []

    def _water_timeout(self) -> Optional[float]:
        # Pagination makes several sequential calls under one deadline
        if self.call_timeout is None:
            return None
        return self.call_timeout * self.water_provider.max_pages

    def _pollution_call(self, region: Region) -> Awaitable[PollutionReading]:
        if region.centroid is not None:
            return self.pollution_provider.fetch_by_coordinates(
                region.centroid.latitude,
                region.centroid.longitude,
                label=region.name,
            )
        return self.pollution_provider.fetch_by_name(region.name)

    async def fetch_region(
        self,
        region: Region,
        water_records: Sequence[WaterQualityRecord],
    ) -> RegionSnapshot:
        weather, pollution = await asyncio.gather(
            settle(
                self.weather_provider.fetch_weather(region.name),
                timeout=self.call_timeout,
                provider=self.weather_provider.service_name,
                state=region.name,
            ),
            settle(
                self._pollution_call(region),
                timeout=self.call_timeout,
                provider=self.pollution_provider.service_name,
                state=region.name,
            ),
        )

        water_record = select_water_for_state(
            water_records, region.name, matcher=self.matcher,
        )
        water = assess_water_quality(water_record)

        return RegionSnapshot(
            region=region,
            weather=weather,
            pollution=pollution,
            water_record=water_record,
            water=water,
            risk=compute_risk(weather, pollution, water),
        )

    async def aggregate(self, regions: Optional[Sequence[Region]] = None) -> AggregationReport:
        """Run one full aggregation pass."""
        targets = tuple(regions) if regions is not None else self.regions
        start = time.monotonic()

        water_records = await self.fetch_water_dataset()

        async def _one(region: Region) -> RegionSnapshot:
            return await self.fetch_region(region, water_records)

        snapshots = await run_bounded(targets, _one, self.concurrency)

        duration_ms = int((time.monotonic() - start) * 1000)
        meta = AggregationMeta(
            weather_api_key_present=self.weather_provider.is_configured,
            water_api_key_present=self.water_provider.is_configured,
            pollution_source=(
                self.pollution_provider.service_name
                if self.pollution_provider.is_configured else "placeholder"
            ),
            water_source=self.water_provider.source,
            water_records=len(water_records),
            region_count=len(snapshots),
            concurrency=self.concurrency,
            duration_ms=duration_ms,
        )

        logger.info(
            "Aggregated %d regions in %dms (%d water records)",
            len(snapshots), duration_ms, len(water_records),
            extra={
                "region_count": len(snapshots),
                "water_records": len(water_records),
                "duration_ms": duration_ms,
            },
        )

        return AggregationReport(
            updated_at=datetime.now(timezone.utc),
            states=snapshots,
            meta=meta,
        )


def build_default_aggregator() -> OutbreakAggregator:
    """Wire providers from application settings."""
    return OutbreakAggregator(
        WeatherProvider(settings.WEATHER_API_KEY),
        PollutionProvider(settings.WEATHER_API_KEY),
        WaterQualityProvider(settings.WATER_API_KEY),
    )


@lru_cache()
def get_aggregator() -> OutbreakAggregator:
    """FastAPI dependency: one aggregator (and its HTTP clients) per process."""
    return build_default_aggregator()
