"""Tests for CRS guessing and Web Mercator conversion."""

import math

import pytest

from mapsketch.proxy.geo import (
    CRS,
    MERCATOR_THRESHOLD,
    ORIGIN_SHIFT,
    guess_crs,
    to_lonlat,
    web_mercator_to_lonlat,
)


class TestGuessCrs:
    def test_degrees_are_wgs84(self):
        assert guess_crs(-3.0, 52.0) is CRS.WGS84

    def test_large_x_is_web_mercator(self):
        assert guess_crs(-333958.0, 52.0) is CRS.WEB_MERCATOR

    def test_large_y_is_web_mercator(self):
        assert guess_crs(0.0, 6800000.0) is CRS.WEB_MERCATOR

    def test_threshold_is_exclusive(self):
        assert guess_crs(MERCATOR_THRESHOLD, -MERCATOR_THRESHOLD) is CRS.WGS84
        assert guess_crs(MERCATOR_THRESHOLD + 1, 0.0) is CRS.WEB_MERCATOR

    def test_nan_is_wgs84(self):
        assert guess_crs(math.nan, math.nan) is CRS.WGS84


class TestWebMercatorToLonLat:
    def test_origin(self):
        assert web_mercator_to_lonlat(0.0, 0.0) == pytest.approx((0.0, 0.0))

    def test_antimeridian(self):
        lon, _ = web_mercator_to_lonlat(ORIGIN_SHIFT, 0.0)
        assert lon == pytest.approx(180.0)

    def test_london(self):
        lon, lat = web_mercator_to_lonlat(-11169.0, 6710000.0)
        assert lon == pytest.approx(-0.1, abs=0.1)
        assert lat == pytest.approx(51.5, abs=0.1)


class TestToLonLat:
    def test_mercator_input_is_converted(self):
        lon, lat = to_lonlat(-11169.0, 6710000.0)
        assert lon == pytest.approx(-0.1, abs=0.1)
        assert lat == pytest.approx(51.5, abs=0.1)

    def test_geographic_input_passes_through(self):
        assert to_lonlat(-0.1, 51.5) == (-0.1, 51.5)

    def test_nan_propagates(self):
        lon, lat = to_lonlat(math.nan, 51.5)
        assert math.isnan(lon)
        assert lat == 51.5


class TestExtremeNorthings:
    def test_huge_northing_saturates_at_pole(self):
        lon, lat = web_mercator_to_lonlat(10.0, 1e10)
        assert lat == 90.0
        assert lon == pytest.approx(10.0 / ORIGIN_SHIFT * 180.0)

    def test_huge_southing_saturates_at_pole(self):
        _, lat = web_mercator_to_lonlat(0.0, -1e10)
        assert lat == pytest.approx(-90.0)

    def test_to_lonlat_does_not_raise(self):
        assert to_lonlat(0.0, 1e10)[1] == 90.0
