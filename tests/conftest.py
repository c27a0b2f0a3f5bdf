"""
Gemeinsame Fixtures für die ShadowFinder Tests.

Deterministische Sonnenstand-Provider, damit Band-Zählungen exakt
vorhersagbar sind, plus ein echter NOAA-Scan zur Tag-und-Nacht-Gleiche.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from shadowfinder.analysis import AnalysisRequest, analyze_shadow
from shadowfinder.sun_position import (
    NoaaSolarPosition,
    SolarPositionProvider,
    _declination_and_equation_of_time,
    to_utc_timestamp,
)

EQUINOX_NOON = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


class ConstantAltitudeProvider(SolarPositionProvider):
    """Überall dieselbe Sonnenhöhe (Radiant)"""

    name = "constant"

    def __init__(self, altitude_rad):
        self.altitude_rad = altitude_rad
        self.calls = 0

    def altitude(self, when, latitudes, longitudes):
        self.calls += 1
        lat, _ = np.broadcast_arrays(np.asarray(latitudes, dtype=float), np.asarray(longitudes, dtype=float))
        return np.full(lat.shape, self.altitude_rad)


class AlwaysNightProvider(ConstantAltitudeProvider):
    name = "night"

    def __init__(self):
        super().__init__(-0.1)


class LatitudeRingProvider(SolarPositionProvider):
    """
    Sonnenhöhe = peak - |lat - center| (Grad), unabhängig vom Längengrad.

    Mit Objekthöhe == Schattenlänge (45°) liegen die Treffer bei
    center ± (peak - 45).
    """

    name = "ring"

    def __init__(self, center_lat=10.0, peak_deg=60.0):
        self.center_lat = center_lat
        self.peak_deg = peak_deg

    def altitude(self, when, latitudes, longitudes):
        lat, _ = np.broadcast_arrays(np.asarray(latitudes, dtype=float), np.asarray(longitudes, dtype=float))
        return np.deg2rad(self.peak_deg - np.abs(lat - self.center_lat))


@pytest.fixture
def ring_provider():
    return LatitudeRingProvider()


@pytest.fixture
def night_provider():
    return AlwaysNightProvider()


@pytest.fixture
def equal_request():
    """100px Objekt, 100px Schatten -> 45° Sonnenhöhe"""
    return AnalysisRequest(object_height=100.0, shadow_length=100.0, known_time=EQUINOX_NOON)


@pytest.fixture
def ring_result(equal_request, ring_provider):
    return analyze_shadow(equal_request, ring_provider)


@pytest.fixture(scope="session")
def equinox_result():
    request = AnalysisRequest(object_height=100.0, shadow_length=100.0, known_time=EQUINOX_NOON)
    return analyze_shadow(request, NoaaSolarPosition())


@pytest.fixture
def constant_provider():
    """Factory: constant_provider(altitude_rad)"""
    return ConstantAltitudeProvider


@pytest.fixture
def ring_factory():
    """Factory: ring_factory(center_lat=..., peak_deg=...)"""
    return LatitudeRingProvider


def _subsolar_longitude(when):
    """Längengrad, an dem die Sonne zum Zeitpunkt kulminiert (NOAA)."""
    _, eq_of_time = _declination_and_equation_of_time(when)
    dt = to_utc_timestamp(when)
    minutes_utc = dt.hour * 60 + dt.minute + dt.second / 60
    lon = (720 - minutes_utc - eq_of_time) / 4
    return ((lon + 180) % 360) - 180


@pytest.fixture
def subsolar_longitude():
    return _subsolar_longitude
