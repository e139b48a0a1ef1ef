"""
Tests for the regional data fetcher and aggregation pass.

Covers:
    • Bounded worker pool (order, cap, clamping)
    • Failure isolation per upstream call, including timeouts
    • Single water-dataset fetch per pass
    • Snapshot / report serialisation and provenance metadata
"""

from __future__ import annotations

import asyncio

import pytest

from backend.app.ingestion.models import PollutionReading, WaterQualityRecord, WeatherReading
from backend.app.risk.aggregator import AggregationReport, run_bounded, settle
from backend.app.risk.risk_composer import RiskLevel, ThreatCategory
from backend.app.risk.water_quality import WaterQualityLabel
from backend.app.spatial.regions import MONITORED_REGIONS, Coordinate, Region


# ═══════════════════════════════════════════════════════════════════════════
# Worker pool
# ═══════════════════════════════════════════════════════════════════════════

class TestRunBounded:
    def test_preserves_order_with_shuffled_completion(self, rng):
        items = list(range(40))
        delays = {i: rng.uniform(0, 0.01) for i in items}

        async def worker(i):
            await asyncio.sleep(delays[i])
            return i * i

        results = asyncio.run(run_bounded(items, worker, 6))
        assert results == [i * i for i in items]

    def test_caps_in_flight(self):
        state = {"now": 0, "peak": 0}

        async def worker(i):
            state["now"] += 1
            state["peak"] = max(state["peak"], state["now"])
            await asyncio.sleep(0.002)
            state["now"] -= 1
            return i

        asyncio.run(run_bounded(list(range(20)), worker, 4))
        assert state["peak"] == 4

    def test_fewer_items_than_workers(self):
        async def worker(i):
            return i

        assert asyncio.run(run_bounded([1, 2], worker, 6)) == [1, 2]

    @pytest.mark.parametrize("concurrency", [0, -3])
    def test_concurrency_below_one_is_one(self, concurrency):
        state = {"now": 0, "peak": 0}

        async def worker(i):
            state["now"] += 1
            state["peak"] = max(state["peak"], state["now"])
            await asyncio.sleep(0)
            state["now"] -= 1
            return i

        assert asyncio.run(run_bounded([3, 2, 1], worker, concurrency)) == [3, 2, 1]
        assert state["peak"] == 1

    def test_empty(self):
        async def worker(i):
            return i

        assert asyncio.run(run_bounded([], worker, 6)) == []


class TestSettle:
    def test_passes_value_through(self):
        async def ok():
            return 42

        assert asyncio.run(settle(ok(), timeout=1.0, provider="p")) == 42

    def test_exception_becomes_none(self, caplog):
        async def bad():
            raise RuntimeError("kaboom")

        with caplog.at_level("WARNING"):
            assert asyncio.run(settle(bad(), timeout=1.0, provider="p", state="Goa")) is None
        assert "kaboom" in caplog.text

    def test_timeout_becomes_none(self):
        async def slow():
            await asyncio.sleep(1.0)
            return 1

        assert asyncio.run(settle(slow(), timeout=0.01, provider="p")) is None


# ═══════════════════════════════════════════════════════════════════════════
# Aggregation pass
# ═══════════════════════════════════════════════════════════════════════════

class TestAggregate:
    def test_thirty_five_regions_with_random_failures(self, make_aggregator, fakes, rng):
        regions = MONITORED_REGIONS[:35]
        names = [r.name for r in regions]
        weather_failing = {n for n in names if rng.random() < 0.3}
        pollution_failing = {n for n in names if rng.random() < 0.3}
        delays = {n: rng.uniform(0, 0.01) for n in names}

        weather = fakes["weather"](failing=weather_failing, delays=delays)
        pollution = fakes["pollution"](failing=pollution_failing)
        aggregator = make_aggregator(
            weather=weather, pollution=pollution, regions=regions, concurrency=6,
        )

        report = asyncio.run(aggregator.aggregate())

        assert len(report.states) == 35
        assert [s.state for s in report.states] == names
        assert weather.max_in_flight <= 6
        for snapshot in report.states:
            assert (snapshot.weather is None) == (snapshot.state in weather_failing)
            assert (snapshot.pollution is None) == (snapshot.state in pollution_failing)

    def test_concurrency_reaches_configured_cap(self, make_aggregator, fakes):
        weather = fakes["weather"](delays={r.name: 0.005 for r in MONITORED_REGIONS})
        aggregator = make_aggregator(weather=weather, concurrency=6)
        asyncio.run(aggregator.aggregate())
        assert weather.max_in_flight == 6

    def test_water_fetched_once_per_pass(self, make_aggregator, fakes):
        water = fakes["water"]([WaterQualityRecord(state_name="Kerala", quality_parameter="BOD", value="8")])
        aggregator = make_aggregator(water=water)
        report = asyncio.run(aggregator.aggregate())

        assert water.fetch_count == 1
        kerala = report.find_state("Kerala")
        assert kerala.water.label == WaterQualityLabel.POOR
        assert kerala.water_record.value == "8"

        goa = report.find_state("Goa")
        assert goa.water.label == WaterQualityLabel.UNKNOWN
        assert goa.water_record is None

    def test_water_failure_makes_every_region_unknown(self, make_aggregator, fakes):
        aggregator = make_aggregator(water=fakes["water"](fail=True))
        report = asyncio.run(aggregator.aggregate())

        assert len(report.states) == len(MONITORED_REGIONS)
        assert all(s.water.label == WaterQualityLabel.UNKNOWN for s in report.states)
        assert report.meta.water_records == 0

    def test_all_upstreams_down(self, make_aggregator, fakes):
        names = {r.name for r in MONITORED_REGIONS}
        aggregator = make_aggregator(
            weather=fakes["weather"](failing=names),
            pollution=fakes["pollution"](failing=names),
            water=fakes["water"](fail=True),
        )
        report = asyncio.run(aggregator.aggregate())

        for snapshot in report.states:
            assert snapshot.risk.score == 0.25
            assert snapshot.risk.level == RiskLevel.LOW
            assert snapshot.risk.primary_threat == ThreatCategory.WATER_BORNE

    def test_slow_weather_times_out(self, make_aggregator, fakes):
        region = Region("Kerala", Coordinate(10.85, 76.27))
        weather = fakes["weather"](delays={"Kerala": 1.0})
        aggregator = make_aggregator(weather=weather, regions=[region], call_timeout=0.02)

        report = asyncio.run(aggregator.aggregate())
        assert report.states[0].weather is None
        assert report.states[0].pollution is not None

    def test_region_without_centroid_uses_name_lookup(self, make_aggregator, fakes):
        pollution = fakes["pollution"]()
        regions = [Region("Kerala", Coordinate(10.85, 76.27)), Region("Lakeside District")]
        aggregator = make_aggregator(pollution=pollution, regions=regions)

        asyncio.run(aggregator.aggregate())
        assert pollution.by_coordinates == ["Kerala"]
        assert pollution.by_name == ["Lakeside District"]

    def test_custom_matcher(self, make_aggregator, fakes):
        water = fakes["water"]([WaterQualityRecord(state_name="Orissa", quality_parameter="BOD", value="8")])
        aliases = {"orissa": "odisha"}
        aggregator = make_aggregator(
            water=water,
            regions=[Region("Odisha")],
            matcher=lambda rec, target: aliases.get(rec, rec) == target,
        )
        report = asyncio.run(aggregator.aggregate())
        assert report.states[0].water.label == WaterQualityLabel.POOR

    def test_close_closes_every_provider(self, make_aggregator, fakes):
        weather, pollution, water = fakes["weather"](), fakes["pollution"](), fakes["water"]()
        aggregator = make_aggregator(weather=weather, pollution=pollution, water=water)
        asyncio.run(aggregator.close())
        assert weather.closed and pollution.closed and water.closed


class TestReportSerialisation:
    def _report(self, make_aggregator, fakes, **water_kwargs) -> AggregationReport:
        weather = fakes["weather"]({
            "Kerala": WeatherReading("Kochi", temp=30, humidity=80, rain_last_3h=2.0),
        })
        pollution = fakes["pollution"]({
            "Kerala": PollutionReading("Kerala", pm25=20, pm10=35, us_epa_index=None, last_updated="2025-07-01 10:00"),
        })
        water = fakes["water"](
            [WaterQualityRecord("K1", "Periyar", "Kerala", "Ernakulam", "BOD", "8")],
            **water_kwargs,
        )
        aggregator = make_aggregator(
            weather=weather, pollution=pollution, water=water,
            regions=[Region("Kerala", Coordinate(10.85, 76.27))],
        )
        return asyncio.run(aggregator.aggregate())

    def test_state_row(self, make_aggregator, fakes):
        row = self._report(make_aggregator, fakes).to_dict()["states"][0]

        assert row["state"] == "Kerala"
        assert row["riskScore"] == 0.82
        assert row["overallRisk"] == "High"
        assert row["riskLevel"] == "High"
        assert row["primaryThreat"] == "Vector-borne"
        assert row["dengueRisk"] == 82
        assert row["waterRisk"] == 80
        assert row["environmentalFactors"] == {
            "temp": 30,
            "humidity": 80,
            "rain": True,
            "pm25": 20,
            "aqiUS": None,
            "waterQuality": "Poor",
        }
        assert row["weather"]["city"] == "Kochi"
        assert row["pollution"]["lastUpdated"] == "2025-07-01 10:00"
        assert row["water"]["station_name"] == "Periyar"
        assert row["cases"] == 0
        assert row["deaths"] == 0

    def test_envelope_and_meta(self, make_aggregator, fakes):
        body = self._report(make_aggregator, fakes).to_dict()

        assert set(body) == {"updatedAt", "states", "meta"}
        assert "T" in body["updatedAt"]
        meta = body["meta"]
        assert meta["weatherApiKeyPresent"] is True
        assert meta["waterApiKeyPresent"] is True
        assert meta["pollutionSource"] == "fake-pollution"
        assert meta["waterSource"] == "fake-water"
        assert meta["waterRecords"] == 1
        assert meta["regionCount"] == 1

    def test_meta_reports_fallbacks(self, make_aggregator, fakes):
        aggregator = make_aggregator(
            weather=fakes["weather"](configured=False),
            pollution=fakes["pollution"](configured=False),
            water=fakes["water"](configured=False),
            regions=[Region("Goa")],
        )
        meta = asyncio.run(aggregator.aggregate()).to_dict()["meta"]
        assert meta["weatherApiKeyPresent"] is False
        assert meta["pollutionSource"] == "placeholder"
        assert meta["waterSource"] == "simulation"

    def test_missing_weather_serialises_defaults(self, make_aggregator, fakes):
        aggregator = make_aggregator(
            weather=fakes["weather"](failing={"Goa"}),
            pollution=fakes["pollution"](failing={"Goa"}),
            regions=[Region("Goa")],
        )
        row = asyncio.run(aggregator.aggregate()).to_dict()["states"][0]
        assert row["weather"] is None
        assert row["pollution"] is None
        assert row["environmentalFactors"]["temp"] == 0.0
        assert row["environmentalFactors"]["aqiUS"] is None
        assert row["environmentalFactors"]["waterQuality"] == "Unknown"

    def test_find_state_is_normalised(self, make_aggregator, fakes):
        report = self._report(make_aggregator, fakes)
        assert report.find_state("  KERALA ") is not None
        assert report.find_state("Atlantis") is None
        assert report.find_state("") is None
