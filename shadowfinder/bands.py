"""
Band-Klassifikation

Die Bänder sind KEINE Partition: ein Punkt mit Likelihood 0.03 zählt in
jedes Band, dessen Schwelle er erfüllt. Das Haupt-Band (0.10) wird nur für
die Bounding-Box und die Standort-Schätzung verwendet.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np

from . import config
from .grid_search import ShadowGrid

logger = logging.getLogger(__name__)

BAND_THRESHOLDS: Dict[str, float] = {
    "ultra_tight": config.ULTRA_TIGHT_THRESHOLD,
    "tight": config.TIGHT_THRESHOLD,
    "main": config.MAIN_BAND_THRESHOLD,
    "visible": config.VISIBLE_THRESHOLD,
}


@dataclass(frozen=True)
class BandStatistics:
    total_points: int
    valid_points: int
    night_points: int
    ultra_tight_band_points: int
    tight_band_points: int
    visible_band_points: int
    main_band_points: int


@dataclass(frozen=True)
class BandRange:
    lat_range: Tuple[float, float]
    lng_range: Tuple[float, float]


def threshold_mask(likelihoods: np.ndarray, threshold: float) -> np.ndarray:
    """0 <= likelihood <= threshold (Nachtpunkte fallen raus)"""
    likelihoods = np.asarray(likelihoods, dtype=float)
    return (likelihoods >= 0) & (likelihoods <= threshold)


def band_mask(grid: ShadowGrid, band: str) -> np.ndarray:
    try:
        threshold = BAND_THRESHOLDS[band]
    except KeyError:
        raise ValueError(
            f"Unbekanntes Band '{band}' (erlaubt: {', '.join(BAND_THRESHOLDS)})"
        ) from None
    return threshold_mask(grid.likelihoods, threshold)


def classify_bands(grid: ShadowGrid) -> Tuple[BandStatistics, BandRange]:
    """
    Statistik pro Band plus Bounding-Box des Haupt-Bands.

    Ist das Haupt-Band leer, sind beide Bereiche (0, 0).
    """
    likelihoods = grid.likelihoods

    main = band_mask(grid, "main")
    stats = BandStatistics(
        total_points=len(grid),
        valid_points=int(np.count_nonzero(grid.valid_mask)),
        night_points=int(np.count_nonzero(grid.night_mask)),
        ultra_tight_band_points=int(np.count_nonzero(threshold_mask(likelihoods, config.ULTRA_TIGHT_THRESHOLD))),
        tight_band_points=int(np.count_nonzero(threshold_mask(likelihoods, config.TIGHT_THRESHOLD))),
        visible_band_points=int(np.count_nonzero(threshold_mask(likelihoods, config.VISIBLE_THRESHOLD))),
        main_band_points=int(np.count_nonzero(main)),
    )

    if stats.main_band_points > 0:
        lats = grid.latitudes[main]
        lngs = grid.longitudes[main]
        band_range = BandRange(
            lat_range=(float(lats.min()), float(lats.max())),
            lng_range=(float(lngs.min()), float(lngs.max()))
        )
    else:
        band_range = BandRange(lat_range=(0.0, 0.0), lng_range=(0.0, 0.0))

    logger.info(
        "Punkte: %d gesamt, %d gültig, %d Nacht | Bänder: ultra-tight=%d, tight=%d, visible=%d",
        stats.total_points, stats.valid_points, stats.night_points,
        stats.ultra_tight_band_points, stats.tight_band_points, stats.visible_band_points
    )
    logger.info(
        "Haupt-Band: Lat %s bis %s, Lng %s bis %s",
        band_range.lat_range[0], band_range.lat_range[1],
        band_range.lng_range[0], band_range.lng_range[1]
    )

    return stats, band_range
