from __future__ import annotations

import pytest

from modules.core.geo import bounding_box, haversine_distance_m

pytestmark = pytest.mark.unit


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_distance_m(12.97, 77.59, 12.97, 77.59) == 0

    def test_one_degree_of_latitude(self):
        assert haversine_distance_m(0, 0, 1, 0) == pytest.approx(111_195, rel=1e-3)

    def test_symmetric(self):
        a = haversine_distance_m(12.9716, 77.5946, 12.9352, 77.6245)
        b = haversine_distance_m(12.9352, 77.6245, 12.9716, 77.5946)
        assert a == pytest.approx(b)


class TestBoundingBox:
    def test_contains_circle(self):
        box = bounding_box(12.9716, 77.5946, 10_000)

        north = haversine_distance_m(12.9716, 77.5946, box.max_lat, 77.5946)
        east = haversine_distance_m(12.9716, 77.5946, 12.9716, box.max_lng)
        assert north == pytest.approx(10_000, rel=1e-3)
        assert east >= 10_000 * 0.999

    def test_clamped_near_pole(self):
        box = bounding_box(89.99, 10, 50_000)
        assert box.max_lat == 90.0
        assert box.min_lng >= -180.0
        assert box.max_lng <= 180.0
