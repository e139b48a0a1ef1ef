"""
Shared fakes for the aggregation and API tests.

The fakes mirror the public surface of the real providers so the aggregator
can be exercised without HTTP.
"""

from __future__ import annotations

import asyncio
import random
from typing import Dict, List, Optional, Set

import pytest

from backend.app.core.errors import ExternalServiceError
from backend.app.ingestion.models import PollutionReading, WaterQualityRecord, WeatherReading
from backend.app.risk.aggregator import OutbreakAggregator


class FakeWeatherProvider:
    service_name = "fake-weather"

    def __init__(
        self,
        readings: Optional[Dict[str, WeatherReading]] = None,
        *,
        failing: Set[str] = frozenset(),
        delays: Optional[Dict[str, float]] = None,
        configured: bool = True,
    ):
        self.readings = readings or {}
        self.failing = set(failing)
        self.delays = delays or {}
        self.is_configured = configured
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def fetch_weather(self, region_name: str) -> WeatherReading:
        self.calls.append(region_name)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(region_name, 0.001))
            if region_name in self.failing:
                raise ExternalServiceError(self.service_name, "simulated outage")
            return self.readings.get(region_name) or WeatherReading(city=region_name)
        finally:
            self.in_flight -= 1

    async def close(self) -> None:
        self.closed = True


class FakePollutionProvider:
    service_name = "fake-pollution"

    def __init__(
        self,
        readings: Optional[Dict[str, PollutionReading]] = None,
        *,
        failing: Set[str] = frozenset(),
        configured: bool = True,
    ):
        self.readings = readings or {}
        self.failing = set(failing)
        self.is_configured = configured
        self.by_coordinates: List[str] = []
        self.by_name: List[str] = []
        self.closed = False

    async def _reading(self, label: str) -> PollutionReading:
        await asyncio.sleep(0.001)
        if label in self.failing:
            raise ExternalServiceError(self.service_name, "simulated outage")
        return self.readings.get(label) or PollutionReading.placeholder(label)

    async def fetch_by_coordinates(self, latitude: float, longitude: float, *, label: str) -> PollutionReading:
        self.by_coordinates.append(label)
        return await self._reading(label)

    async def fetch_by_name(self, region_name: str) -> PollutionReading:
        self.by_name.append(region_name)
        return await self._reading(region_name)

    async def close(self) -> None:
        self.closed = True


class FakeWaterProvider:
    service_name = "fake-water"
    max_pages = 1

    def __init__(
        self,
        records: Optional[List[WaterQualityRecord]] = None,
        *,
        fail: bool = False,
        configured: bool = True,
    ):
        self.records = records or []
        self.fail = fail
        self.is_configured = configured
        self.source = "fake-water" if configured else "simulation"
        self.fetch_count = 0
        self.closed = False

    async def fetch_dataset(self) -> List[WaterQualityRecord]:
        self.fetch_count += 1
        await asyncio.sleep(0)
        if self.fail:
            raise ExternalServiceError(self.service_name, "dataset unavailable")
        return list(self.records)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_aggregator():
    """Build an aggregator around fake providers; keyword args override parts."""

    def _make(
        *,
        weather: Optional[FakeWeatherProvider] = None,
        pollution: Optional[FakePollutionProvider] = None,
        water: Optional[FakeWaterProvider] = None,
        **kwargs,
    ) -> OutbreakAggregator:
        return OutbreakAggregator(
            weather or FakeWeatherProvider(),
            pollution or FakePollutionProvider(),
            water or FakeWaterProvider(),
            **kwargs,
        )

    return _make


@pytest.fixture
def fakes():
    """Expose the fake classes to test modules."""
    return {
        "weather": FakeWeatherProvider,
        "pollution": FakePollutionProvider,
        "water": FakeWaterProvider,
    }


@pytest.fixture
def rng():
    return random.Random(20240611)
