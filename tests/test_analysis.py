"""
Tests für den Analyse-Ablauf und die Zwei-Foto-Session.
"""

from datetime import datetime, timedelta, timezone

import numpy as np
import pytest

from shadowfinder.analysis import (
    AnalysisRequest,
    AnalysisSession,
    SessionStore,
    analyze_pair,
    analyze_shadow,
    parse_timestamp,
)
from shadowfinder.errors import IntersectionUnavailable, InvalidMeasurement, InvalidTimestamp
from shadowfinder.grid_search import GridPoint

NOON = datetime(2024, 3, 20, 12, 0, tzinfo=timezone.utc)


class TestParseTimestamp:

    @pytest.mark.parametrize(
        "value",
        [
            "2024-03-20T12:00:00Z",
            "2024-03-20T14:00:00+02:00",
            "2024-03-20 12:00",
            datetime(2024, 3, 20, 12, 0),
            NOON,
        ],
    )
    def test_resolves_to_utc(self, value):
        parsed = parse_timestamp(value)
        assert parsed == NOON
        assert parsed.utcoffset() == timedelta(0)

    @pytest.mark.parametrize("value", [None, "", "   ", "not a date", "2024-13-45T00:00", float("nan")])
    def test_invalid(self, value):
        with pytest.raises(InvalidTimestamp):
            parse_timestamp(value)


class TestAnalyzeShadow:

    def test_zero_height_is_invalid_regardless_of_time(self, ring_provider):
        with pytest.raises(InvalidMeasurement):
            analyze_shadow(AnalysisRequest(0.0, 100.0, "garbage"), ring_provider)
        with pytest.raises(InvalidMeasurement):
            analyze_shadow(AnalysisRequest(0.0, 100.0, NOON), ring_provider)

    def test_invalid_time_before_scan(self, constant_provider):
        provider = constant_provider(0.5)
        with pytest.raises(InvalidTimestamp):
            analyze_shadow(AnalysisRequest(100.0, 100.0, "gestern mittag"), provider)
        assert provider.calls == 0

    def test_result_carries_inputs(self, ring_result):
        assert ring_result.known_time == NOON
        assert ring_result.measurement.object_height == 100.0
        assert len(ring_result.points) == 208_800

    def test_points_are_indexable(self, ring_result):
        points = ring_result.points
        likelihoods = ring_result.grid.likelihoods

        assert points[0] == GridPoint(-60.0, -180.0, float(likelihoods[0]))
        assert (points[720].lat, points[720].lng) == (-59.5, -180.0)
        assert (points[-1].lat, points[-1].lng) == (84.5, 179.5)
        assert [p.lng for p in points[1:3]] == [-179.5, -179.0]
        with pytest.raises(IndexError):
            points[208_800]


class TestEquinoxScenario:
    """100px / 100px (45°) zur Tag-und-Nacht-Gleiche, 12:00 UTC, NOAA-Sonnenstand"""

    def test_ring_at_45_degrees_from_subsolar_point(self, equinox_result, subsolar_longitude):
        grid = equinox_result.grid
        stats = equinox_result.band_stats

        assert stats.total_points == 208_800
        assert stats.ultra_tight_band_points > 0

        ultra = (grid.likelihoods >= 0) & (grid.likelihoods <= 0.05)
        # 45° Elevation bei ~0° Deklination: |lat| höchstens ~46.5°
        assert np.abs(grid.latitudes[ultra]).max() <= 47.0

        # Alle Treffer liegen auf der Tagseite
        subsolar = subsolar_longitude(NOON)
        lng_diff = np.abs(((grid.longitudes[ultra] - subsolar + 180.0) % 360.0) - 180.0)
        assert lng_diff.max() < 90.0

    def test_known_points(self, equinox_result):
        grid = equinox_result.grid

        def likelihood_at(lat, lng):
            index = np.flatnonzero((grid.latitudes == lat) & (grid.longitudes == lng))[0]
            return grid.likelihoods[index]

        assert 0 <= likelihood_at(45.0, 0.0) <= 0.05
        assert 0 <= likelihood_at(-45.0, 0.0) <= 0.05
        assert likelihood_at(0.0, 179.5) == -1.0

    def test_main_band_range(self, equinox_result):
        lat_min, lat_max = equinox_result.tight_band_range.lat_range
        assert -48.0 <= lat_min < 0 < lat_max <= 48.0


class TestAnalysisSession:

    def test_two_slot_workflow(self, equal_request, ring_provider, ring_factory):
        session = AnalysisSession(name="Test")
        assert session.first is None and session.second is None
        assert not session.has_both

        first = session.analyze(1, equal_request, ring_provider)
        assert session.result(1) is first

        with pytest.raises(IntersectionUnavailable):
            session.intersection()

        session.analyze(2, equal_request, ring_factory(center_lat=12.0))
        assert session.has_both
        assert session.intersection().estimate.latitude == pytest.approx(11.0)

        session.clear(1)
        assert session.first is None
        with pytest.raises(IntersectionUnavailable):
            session.intersection()

    def test_failed_analysis_keeps_slot(self, equal_request, ring_provider):
        session = AnalysisSession()
        first = session.analyze(1, equal_request, ring_provider)

        with pytest.raises(InvalidMeasurement):
            session.analyze(1, AnalysisRequest(-1.0, 10.0, NOON), ring_provider)
        assert session.first is first

    @pytest.mark.parametrize("slot", [0, 3, -1])
    def test_invalid_slot(self, slot):
        with pytest.raises(ValueError):
            AnalysisSession().result(slot)

    def test_unique_ids(self):
        assert AnalysisSession().session_id != AnalysisSession().session_id

    def test_store_replaces_slot(self, ring_result):
        session = AnalysisSession()
        session.store(2, ring_result)

        assert session.second is ring_result
        assert session.first is None
        with pytest.raises(ValueError):
            session.store(3, ring_result)


def test_analyze_pair(equal_request, ring_provider):
    first, second, intersection = analyze_pair(equal_request, equal_request, ring_provider)

    assert first.grid.likelihoods.tobytes() == second.grid.likelihoods.tobytes()
    assert len(intersection.points) == first.band_stats.visible_band_points
    assert intersection.estimate.latitude == pytest.approx(10.0)


class TestSessionStore:

    def test_oldest_session_is_evicted(self):
        store = SessionStore(max_sessions=2)
        sessions = [AnalysisSession() for _ in range(3)]

        assert store.add(sessions[0]) == []
        assert store.add(sessions[1]) == []
        assert store.add(sessions[2]) == [sessions[0].session_id]

        assert len(store) == 2
        assert sessions[0].session_id not in store
        assert store.get(sessions[0].session_id) is None

    def test_access_keeps_session_alive(self):
        store = SessionStore(max_sessions=2)
        first, second, third = AnalysisSession(), AnalysisSession(), AnalysisSession()
        store.add(first)
        store.add(second)

        assert store.get(first.session_id) is first
        store.add(third)

        assert first.session_id in store
        assert second.session_id not in store

    def test_remove(self):
        store = SessionStore(max_sessions=5)
        session = AnalysisSession()
        store.add(session)

        assert store.remove(session.session_id) is session
        assert store.remove(session.session_id) is None
        assert len(store) == 0

    def test_limit_must_be_positive(self):
        with pytest.raises(ValueError):
            SessionStore(max_sessions=0)
