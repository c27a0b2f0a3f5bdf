"""
Standort-Schätzung: Schwerpunkt + grober Genauigkeitsradius

Nimmt alle Punkte im Haupt-Band (0 <= likelihood <= 0.10), bildet den
arithmetischen Mittelwert und schätzt den Radius aus der Ausdehnung:

    accuracy_km = max(latSpread * 111, lngSpread * 111 * cos(lat)) / 2

mit Untergrenze 1 km. Kein statistisches Konfidenzintervall.
"""

import math
from dataclasses import dataclass

import numpy as np

from . import config
from .bands import threshold_mask
from .errors import NoMatchFound
from .grid_search import ShadowGrid


@dataclass(frozen=True)
class BestLocationEstimate:
    latitude: float
    longitude: float
    accuracy_km: float  # >= 1.0
    match_count: int
    # Bester Einzelpunkt (nur Darstellung)
    best_lat: float
    best_lng: float
    best_likelihood: float


def estimate_best_location(latitudes, longitudes, likelihoods) -> BestLocationEstimate:
    """
    Raises:
        NoMatchFound: kein Punkt im Haupt-Band
    """
    latitudes = np.asarray(latitudes, dtype=float)
    longitudes = np.asarray(longitudes, dtype=float)
    likelihoods = np.asarray(likelihoods, dtype=float)

    selected = threshold_mask(likelihoods, config.MAIN_BAND_THRESHOLD)
    if not selected.any():
        raise NoMatchFound("Keine passenden Standorte gefunden")

    lats = latitudes[selected]
    lngs = longitudes[selected]
    scores = likelihoods[selected]

    avg_lat = float(lats.mean())
    avg_lng = float(lngs.mean())

    lat_spread = float(lats.max() - lats.min())
    lng_spread = float(lngs.max() - lngs.min())

    accuracy = max(
        lat_spread * config.KM_PER_DEGREE,
        lng_spread * config.KM_PER_DEGREE * math.cos(math.radians(avg_lat))
    ) / 2

    best = int(np.argsort(scores, kind="stable")[0])

    return BestLocationEstimate(
        latitude=avg_lat,
        longitude=avg_lng,
        accuracy_km=max(accuracy, config.MIN_ACCURACY_KM),
        match_count=int(lats.size),
        best_lat=float(lats[best]),
        best_lng=float(lngs[best]),
        best_likelihood=float(scores[best])
    )


def estimate_from_grid(grid: ShadowGrid) -> BestLocationEstimate:
    return estimate_best_location(grid.latitudes, grid.longitudes, grid.likelihoods)
