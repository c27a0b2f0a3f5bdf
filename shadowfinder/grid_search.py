"""
Globaler Grid-Scan

Bewertet jeden Punkt des festen 0.5°-Gitters (290 x 720 = 208.800 Punkte)
gegen die gemessene Schattengeometrie:

    vorhergesagte Schattenlänge = Objekthöhe / tan(Sonnenhöhe)
    likelihood = |(vorhergesagt - gemessen) / gemessen|

0 = perfekte Übereinstimmung, -1 = Nacht (kein Kandidat).
"""

import asyncio
import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncGenerator, Iterator, Optional

import numpy as np

from . import config
from .errors import InvalidMeasurement
from .sun_position import SolarPositionProvider, get_solar_position_provider

logger = logging.getLogger(__name__)

NIGHT_SENTINEL = config.NIGHT_SENTINEL


@dataclass(frozen=True)
class ShadowMeasurement:
    object_height: float  # Pixel
    shadow_length: float  # Pixel


@dataclass(frozen=True)
class GridPoint:
    lat: float
    lng: float
    likelihood: float  # >= 0 oder NIGHT_SENTINEL


def grid_latitudes() -> np.ndarray:
    """-60.0 bis 84.5 inklusive, 290 Werte"""
    count = int(round((config.LAT_MAX - config.LAT_MIN) / config.GRID_STEP)) + 1
    return config.LAT_MIN + np.arange(count) * config.GRID_STEP


def grid_longitudes() -> np.ndarray:
    """-180.0 bis 179.5 inklusive, 720 Werte"""
    count = int(round((config.LNG_MAX - config.LNG_MIN) / config.GRID_STEP)) + 1
    return config.LNG_MIN + np.arange(count) * config.GRID_STEP


GRID_ROWS = len(grid_latitudes())
GRID_COLS = len(grid_longitudes())
GRID_SIZE = GRID_ROWS * GRID_COLS


class ShadowGrid(Sequence):
    """
    Ergebnis eines Scans.

    Flache, schreibgeschützte Arrays in Zeilen-Reihenfolge
    (Breitengrad außen, Längengrad innen). Als Sequence von GridPoints
    indizierbar, die Punkte werden erst beim Zugriff erzeugt.
    """

    __slots__ = ("latitudes", "longitudes", "likelihoods")

    def __init__(self, latitudes: np.ndarray, longitudes: np.ndarray, likelihoods: np.ndarray):
        if not (latitudes.shape == longitudes.shape == likelihoods.shape):
            raise ValueError("Koordinaten- und Likelihood-Arrays müssen gleich lang sein")

        for name, arr in (("latitudes", latitudes), ("longitudes", longitudes), ("likelihoods", likelihoods)):
            arr = np.array(arr, dtype=float)
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    def __setattr__(self, name, value):
        raise AttributeError("ShadowGrid ist unveränderlich")

    def __len__(self) -> int:
        return int(self.likelihoods.size)

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        return GridPoint(
            float(self.latitudes[index]),
            float(self.longitudes[index]),
            float(self.likelihoods[index])
        )

    def __iter__(self) -> Iterator[GridPoint]:
        return self.points()

    def points(self) -> Iterator[GridPoint]:
        for lat, lng, likelihood in zip(self.latitudes, self.longitudes, self.likelihoods):
            yield GridPoint(float(lat), float(lng), float(likelihood))

    @property
    def night_mask(self) -> np.ndarray:
        return self.likelihoods == NIGHT_SENTINEL

    @property
    def valid_mask(self) -> np.ndarray:
        return self.likelihoods != NIGHT_SENTINEL


def validate_measurement(measurement: ShadowMeasurement) -> None:
    """Beide Längen müssen endlich und > 0 sein."""
    for label, value in (("Objekthöhe", measurement.object_height),
                         ("Schattenlänge", measurement.shadow_length)):
        if value is None or not math.isfinite(value) or value <= 0:
            raise InvalidMeasurement(
                f"Ungültige Messung: {label} muss positiv sein (ist {value})"
            )


def score_row(
    altitude_rad: np.ndarray,
    measurement: ShadowMeasurement
) -> np.ndarray:
    """
    Likelihood für eine Zeile Sonnenhöhen.

    tan() wird nur für Höhen > 0 ausgewertet.
    """
    likelihood = np.full(altitude_rad.shape, NIGHT_SENTINEL, dtype=float)
    day = altitude_rad > 0

    predicted = measurement.object_height / np.tan(altitude_rad[day])
    relative_diff = (predicted - measurement.shadow_length) / measurement.shadow_length
    likelihood[day] = np.abs(relative_diff)

    return likelihood


def _scan_row(
    lat: float,
    longitudes: np.ndarray,
    when: datetime,
    measurement: ShadowMeasurement,
    provider: SolarPositionProvider
) -> np.ndarray:
    altitude = provider.altitude(when, np.full(longitudes.shape, lat), longitudes)
    return score_row(np.asarray(altitude, dtype=float), measurement)


def scan_grid(
    measurement: ShadowMeasurement,
    when: datetime,
    provider: Optional[SolarPositionProvider] = None
) -> ShadowGrid:
    """
    Scannt das komplette Gitter für eine Messung und einen UTC-Zeitpunkt.

    ``when`` muss bereits ein gültiger Zeitpunkt sein
    (siehe analysis.parse_timestamp).

    Raises:
        InvalidMeasurement: Objekthöhe oder Schattenlänge <= 0
    """
    validate_measurement(measurement)
    provider = provider or get_solar_position_provider(config.SOLAR_BACKEND)

    latitudes = grid_latitudes()
    longitudes = grid_longitudes()

    logger.info(
        "Grid-Scan gestartet: %s, Objekthöhe=%.1f, Schattenlänge=%.1f, Backend=%s",
        when.isoformat(), measurement.object_height, measurement.shadow_length, provider.name
    )

    rows = [
        _scan_row(lat, longitudes, when, measurement, provider)
        for lat in latitudes
    ]

    grid = _assemble(latitudes, longitudes, rows)
    logger.debug("Grid-Scan fertig: %d Punkte", len(grid))
    return grid


async def scan_grid_async(
    measurement: ShadowMeasurement,
    when: datetime,
    provider: Optional[SolarPositionProvider] = None,
    progress_every_rows: Optional[int] = None
) -> AsyncGenerator[dict, None]:
    """
    Wie scan_grid, aber mit Progress-Updates für WebSocket.

    Yields Progress-Dicts und zum Schluss {"type": "complete", "grid": ShadowGrid}.
    """
    validate_measurement(measurement)
    provider = provider or get_solar_position_provider(config.SOLAR_BACKEND)
    every = max(1, progress_every_rows or config.PROGRESS_EVERY_ROWS)

    latitudes = grid_latitudes()
    longitudes = grid_longitudes()

    yield {
        "type": "progress",
        "phase": "Gitter scannen",
        "percent": 0,
        "rowsDone": 0,
        "rowsTotal": len(latitudes)
    }

    rows = []
    for i, lat in enumerate(latitudes, start=1):
        rows.append(_scan_row(lat, longitudes, when, measurement, provider))

        if i % every == 0 and i < len(latitudes):
            yield {
                "type": "progress",
                "phase": "Gitter scannen",
                "percent": int(i / len(latitudes) * 100),
                "rowsDone": i,
                "rowsTotal": len(latitudes)
            }
            await asyncio.sleep(0)  # Yield control

    yield {
        "type": "complete",
        "percent": 100,
        "grid": _assemble(latitudes, longitudes, rows)
    }


def _assemble(latitudes: np.ndarray, longitudes: np.ndarray, rows: list) -> ShadowGrid:
    lat_mesh, lng_mesh = np.meshgrid(latitudes, longitudes, indexing="ij")
    return ShadowGrid(
        latitudes=lat_mesh.ravel(),
        longitudes=lng_mesh.ravel(),
        likelihoods=np.concatenate(rows)
    )
