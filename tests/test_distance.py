"""Unit tests for great-circle distance."""

import pytest

from src.domain.distance import EARTH_RADIUS_KM, distance_km, haversine_km


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(19.0, 72.0, 19.0, 72.0) == 0.0

    def test_known_distance(self):
        # Mumbai -> Pune ~120 km (great circle)
        d = haversine_km(19.0760, 72.8777, 18.5204, 73.8567)
        assert 115.0 < d < 125.0

    def test_symmetric(self):
        d1 = haversine_km(19.0, 72.0, 20.0, 73.0)
        d2 = haversine_km(20.0, 73.0, 19.0, 72.0)
        assert abs(d1 - d2) < 1e-6

    def test_one_degree_of_latitude(self):
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, abs=0.01)

    def test_antipodal_points(self):
        d = haversine_km(0.0, 0.0, 0.0, 180.0)
        assert d == pytest.approx(3.141592653589793 * EARTH_RADIUS_KM)


class TestDistanceKm:
    """``distance_km`` takes (longitude, latitude) pairs."""

    @pytest.mark.parametrize(
        "point", [(0.0, 0.0), (72.8777, 19.076), (-180.0, -90.0), (180.0, 90.0)]
    )
    def test_same_point_is_zero(self, point):
        assert distance_km(point, point) == 0.0

    def test_symmetric(self):
        a, b = (72.8777, 19.0760), (-0.1276, 51.5072)
        assert distance_km(a, b) == pytest.approx(distance_km(b, a))

    def test_longitude_comes_first(self):
        # one degree of longitude at the equator equals one of latitude
        assert distance_km((0.0, 0.0), (1.0, 0.0)) == pytest.approx(
            distance_km((0.0, 0.0), (0.0, 1.0))
        )
        assert distance_km((72.8777, 19.0760), (73.8567, 18.5204)) == pytest.approx(
            haversine_km(19.0760, 72.8777, 18.5204, 73.8567)
        )
