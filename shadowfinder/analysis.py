"""
Analyse-Ablauf

analyze_shadow():  Messung + Zeitpunkt -> Grid-Scan -> Band-Statistik
AnalysisSession:   Zwei-Foto-Workflow mit zwei optionalen Slots
SessionStore:      begrenzter Session-Speicher (älteste fliegt zuerst)
analyze_pair():    beide Scans parallel, danach Schnittmenge
"""

import logging
import uuid
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd

from .bands import BandRange, BandStatistics, classify_bands
from .errors import InvalidTimestamp
from .estimation import BestLocationEstimate, estimate_from_grid
from .grid_search import GridPoint, ShadowGrid, ShadowMeasurement, scan_grid, validate_measurement
from .intersection import IntersectionResult, combine_scans
from .sun_position import SolarPositionProvider, to_utc_timestamp, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisRequest:
    object_height: float
    shadow_length: float
    known_time: Any  # datetime, pd.Timestamp oder ISO-String (naiv = UTC)


@dataclass(frozen=True)
class AnalysisResult:
    known_time: datetime
    measurement: ShadowMeasurement
    grid: ShadowGrid
    band_stats: BandStatistics
    tight_band_range: BandRange

    @property
    def points(self) -> Sequence[GridPoint]:
        return self.grid

    def best_location(self) -> BestLocationEstimate:
        """Raises NoMatchFound wenn das Haupt-Band leer ist."""
        return estimate_from_grid(self.grid)


def parse_timestamp(value) -> datetime:
    """
    Zeitpunkt -> timezone-aware UTC datetime.

    Raises:
        InvalidTimestamp: leer, nicht parsebar oder NaT
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidTimestamp("Kein Datum/Uhrzeit angegeben")

    try:
        stamp = to_utc_timestamp(value)
    except (ValueError, TypeError, OverflowError) as e:
        raise InvalidTimestamp(f"Ungültiges Datum/Uhrzeit: {value!r}") from e

    if pd.isna(stamp):
        raise InvalidTimestamp(f"Ungültiges Datum/Uhrzeit: {value!r}")

    return stamp.to_pydatetime()


def analyze_shadow(
    request: AnalysisRequest,
    provider: Optional[SolarPositionProvider] = None
) -> AnalysisResult:
    """
    Raises:
        InvalidMeasurement, InvalidTimestamp (beide vor dem Scan)
    """
    measurement = ShadowMeasurement(
        object_height=request.object_height,
        shadow_length=request.shadow_length
    )
    validate_measurement(measurement)
    known_time = parse_timestamp(request.known_time)

    grid = scan_grid(measurement, known_time, provider)
    band_stats, tight_band_range = classify_bands(grid)

    return AnalysisResult(
        known_time=known_time,
        measurement=measurement,
        grid=grid,
        band_stats=band_stats,
        tight_band_range=tight_band_range
    )


def analyze_pair(
    first: AnalysisRequest,
    second: AnalysisRequest,
    provider: Optional[SolarPositionProvider] = None
) -> Tuple[AnalysisResult, AnalysisResult, IntersectionResult]:
    """
    Beide Scans unabhängig in zwei Threads, Schnittmenge nach dem Join.

    Raises:
        NoMatchFound wenn die Schnittmenge kein Haupt-Band hat
    """
    with ThreadPoolExecutor(max_workers=2) as executor:
        first_future = executor.submit(analyze_shadow, first, provider)
        second_future = executor.submit(analyze_shadow, second, provider)
        first_result = first_future.result()
        second_result = second_future.result()

    intersection = combine_scans(first_result.grid, second_result.grid)
    return first_result, second_result, intersection


class AnalysisSession:
    """
    Zwei-Slot-Workflow: Foto 1 und optional Foto 2 derselben Szene.

    Die Slot-Ergebnisse selbst sind unveränderlich, ersetzt wird nur der
    Slot-Inhalt.
    """

    SLOTS = (1, 2)

    def __init__(self, session_id: Optional[str] = None, name: str = ""):
        self.session_id = session_id or str(uuid.uuid4())
        self.name = name
        self.created_at = utc_now()
        self._slots: List[Optional[AnalysisResult]] = [None, None]

    def _index(self, slot: int) -> int:
        if slot not in self.SLOTS:
            raise ValueError(f"Ungültiger Slot {slot} (erlaubt: 1 oder 2)")
        return slot - 1

    def result(self, slot: int) -> Optional[AnalysisResult]:
        return self._slots[self._index(slot)]

    def store(self, slot: int, result: AnalysisResult) -> None:
        self._slots[self._index(slot)] = result

    def clear(self, slot: int) -> None:
        self._slots[self._index(slot)] = None

    def analyze(
        self,
        slot: int,
        request: AnalysisRequest,
        provider: Optional[SolarPositionProvider] = None
    ) -> AnalysisResult:
        self._index(slot)  # ungültiger Slot vor dem Scan
        result = analyze_shadow(request, provider)
        self.store(slot, result)
        logger.info("Session %s: Foto %d analysiert", self.session_id, slot)
        return result

    @property
    def first(self) -> Optional[AnalysisResult]:
        return self._slots[0]

    @property
    def second(self) -> Optional[AnalysisResult]:
        return self._slots[1]

    @property
    def has_both(self) -> bool:
        return self.first is not None and self.second is not None

    def intersection(self) -> IntersectionResult:
        """
        Raises:
            IntersectionUnavailable: ein Slot ist leer
            NoMatchFound: Schnittmenge ohne Haupt-Band
        """
        return combine_scans(
            self.first.grid if self.first else None,
            self.second.grid if self.second else None
        )


class SessionStore:
    """
    Sessions im Speicher, höchstens max_sessions Stück.

    Jeder Zugriff macht eine Session wieder "frisch", beim Überlauf wird
    die am längsten unbenutzte verworfen.
    """

    def __init__(self, max_sessions: int):
        if max_sessions < 1:
            raise ValueError(f"max_sessions muss >= 1 sein (ist {max_sessions})")
        self.max_sessions = max_sessions
        self._sessions: "OrderedDict[str, AnalysisSession]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id) -> bool:
        return session_id in self._sessions

    def add(self, session: AnalysisSession) -> List[str]:
        """Legt die Session ab und gibt die IDs verdrängter Sessions zurück."""
        self._sessions[session.session_id] = session
        self._sessions.move_to_end(session.session_id)

        evicted = []
        while len(self._sessions) > self.max_sessions:
            session_id, _ = self._sessions.popitem(last=False)
            evicted.append(session_id)
            logger.info("Session %s verworfen (Limit %d)", session_id, self.max_sessions)
        return evicted

    def get(self, session_id: str) -> Optional[AnalysisSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    def remove(self, session_id: str) -> Optional[AnalysisSession]:
        return self._sessions.pop(session_id, None)

    def clear(self) -> None:
        self._sessions.clear()
