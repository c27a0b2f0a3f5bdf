"""
Tests für die Standort-Schätzung (Schwerpunkt + Genauigkeitsradius).
"""

import math

import numpy as np
import pytest

from shadowfinder.analysis import AnalysisRequest, analyze_shadow
from shadowfinder.errors import NoMatchFound
from shadowfinder.estimation import estimate_best_location, estimate_from_grid
from shadowfinder.grid_search import NIGHT_SENTINEL


class TestEstimateBestLocation:

    def test_centroid_and_accuracy(self):
        estimate = estimate_best_location(
            [10.0, 12.0, 14.0, 50.0],
            [20.0, 22.0, 24.0, 0.0],
            [0.02, 0.08, 0.10, 0.11]   # letzter Punkt liegt außerhalb des Haupt-Bands
        )

        assert estimate.latitude == pytest.approx(12.0)
        assert estimate.longitude == pytest.approx(22.0)
        expected = max(4 * 111, 4 * 111 * math.cos(math.radians(12.0))) / 2
        assert estimate.accuracy_km == pytest.approx(expected)
        assert estimate.match_count == 3
        assert (estimate.best_lat, estimate.best_lng, estimate.best_likelihood) == (10.0, 20.0, 0.02)

    def test_longitude_spread_dominates(self):
        estimate = estimate_best_location([0.0, 0.0], [0.0, 10.0], [0.01, 0.01])
        assert estimate.accuracy_km == pytest.approx(10 * 111 / 2)

    def test_single_point_floor(self):
        estimate = estimate_best_location([45.0], [7.5], [0.0])
        assert estimate.accuracy_km == 1.0
        assert (estimate.latitude, estimate.longitude) == (45.0, 7.5)

    def test_accuracy_never_below_floor(self):
        estimate = estimate_best_location([45.0, 45.0], [7.5, 7.5], [0.04, 0.06])
        assert estimate.accuracy_km >= 1.0

    def test_night_points_ignored(self):
        estimate = estimate_best_location([0.0, 80.0], [0.0, 100.0], [0.05, NIGHT_SENTINEL])
        assert estimate.match_count == 1
        assert estimate.latitude == 0.0

    @pytest.mark.parametrize(
        "likelihoods",
        [
            [NIGHT_SENTINEL, NIGHT_SENTINEL],
            [0.1000001, 3.0],
            [NIGHT_SENTINEL, 0.2],
        ],
    )
    def test_no_match(self, likelihoods):
        with pytest.raises(NoMatchFound):
            estimate_best_location([1.0, 2.0], [1.0, 2.0], likelihoods)

    def test_no_match_on_empty_input(self):
        with pytest.raises(NoMatchFound):
            estimate_best_location([], [], [])


class TestEstimateFromGrid:

    def test_ring_centroid(self, ring_result):
        estimate = ring_result.best_location()

        # Haupt-Band: 22.0..27.5 und -7.5..-2.0, symmetrisch um 10
        assert estimate.latitude == pytest.approx(10.0)
        assert estimate.longitude == pytest.approx(-0.25)
        assert estimate.match_count == 24 * 720
        expected = max(35.0 * 111, 359.5 * 111 * math.cos(math.radians(10.0))) / 2
        assert estimate.accuracy_km == pytest.approx(expected)

    def test_all_night_is_no_match(self, night_provider):
        result = analyze_shadow(
            AnalysisRequest(object_height=50.0, shadow_length=50.0, known_time="2024-03-20T00:00:00Z"),
            night_provider
        )
        assert result.band_stats.valid_points == 0
        with pytest.raises(NoMatchFound):
            result.best_location()

    def test_absurd_measurement_is_no_match(self, constant_provider):
        # 45° überall -> vorhergesagte Schattenlänge 1, gemessen 1.000.000
        result = analyze_shadow(
            AnalysisRequest(object_height=1.0, shadow_length=1_000_000.0, known_time="2024-03-20T12:00:00Z"),
            constant_provider(math.radians(45))
        )
        assert np.all(result.grid.likelihoods > 0.10)
        with pytest.raises(NoMatchFound):
            estimate_from_grid(result.grid)
