"""
Tests for the region catalogue and nearest-state lookup.
"""

from __future__ import annotations

import pytest

from backend.app.spatial.regions import (
    ALL_STATES,
    MONITORED_REGIONS,
    STATE_COORDINATES,
    Coordinate,
    find_nearest_state,
    haversine_km,
)


class TestCatalogue:
    def test_counts(self):
        assert len(ALL_STATES) == 36
        assert len(set(ALL_STATES)) == 36
        assert len(MONITORED_REGIONS) == 36

    def test_every_state_has_centroid(self):
        for region in MONITORED_REGIONS:
            assert region.centroid == STATE_COORDINATES[region.name]

    def test_order_matches_names(self):
        assert [r.name for r in MONITORED_REGIONS] == list(ALL_STATES)

    def test_includes_union_territories(self):
        assert "Delhi" in ALL_STATES
        assert "Ladakh" in ALL_STATES
        assert "Puducherry" in ALL_STATES


class TestCoordinate:
    def test_invalid_latitude(self):
        with pytest.raises(ValueError):
            Coordinate(95.0, 10.0)

    def test_invalid_longitude(self):
        with pytest.raises(ValueError):
            Coordinate(10.0, -181.0)


class TestHaversine:
    def test_zero_distance(self):
        p = Coordinate(20.0, 78.0)
        assert haversine_km(p, p) == 0.0

    def test_delhi_to_kolkata(self):
        d = haversine_km(Coordinate(28.6139, 77.2090), Coordinate(22.5726, 88.3639))
        assert 1250 <= d <= 1350

    def test_symmetric(self):
        a, b = Coordinate(8.5, 76.9), Coordinate(26.9, 75.8)
        assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))


class TestFindNearestState:
    @pytest.mark.parametrize("lat, lon, state", [
        (22.5726, 88.3639, "West Bengal"),      # Kolkata
        (26.8467, 80.9462, "Uttar Pradesh"),    # Lucknow
        (26.9124, 75.7873, "Rajasthan"),        # Jaipur
        (28.6139, 77.2090, "Delhi"),
        (8.5241, 76.9366, "Kerala"),            # Thiruvananthapuram
    ])
    def test_known_cities(self, lat, lon, state):
        assert find_nearest_state(lat, lon) == state

    def test_exact_centroid(self):
        for name, c in STATE_COORDINATES.items():
            assert find_nearest_state(c.latitude, c.longitude) == name

    def test_invalid_coordinates(self):
        with pytest.raises(ValueError):
            find_nearest_state(100.0, 0.0)
