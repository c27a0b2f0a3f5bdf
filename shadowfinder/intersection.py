"""
Schnittmenge zweier Scans (Zwei-Foto-Modus)

Beide Scans werden auf ihre sichtbaren Punkte reduziert
(likelihood != -1 und <= 0.15). Punkte werden über die auf eine
Nachkommastelle gerundeten Koordinaten gematcht, da beide Scans dasselbe
0.5°-Gitter benutzen. Kombiniert wird konservativ mit max(): ein Standort
ist nur so gut wie seine schwächere Messung.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from . import config
from .errors import IntersectionUnavailable
from .estimation import BestLocationEstimate, estimate_best_location
from .grid_search import GridPoint, ShadowGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntersectionPoint:
    lat: float
    lng: float
    combined_likelihood: float


@dataclass(frozen=True)
class IntersectionResult:
    points: Tuple[IntersectionPoint, ...]
    first_visible_points: int
    second_visible_points: int
    estimate: BestLocationEstimate


def coordinate_key(lat: float, lng: float) -> Tuple[float, float]:
    return (round(lat, config.INTERSECTION_KEY_DECIMALS),
            round(lng, config.INTERSECTION_KEY_DECIMALS))


def visible_subset(grid: ShadowGrid) -> List[GridPoint]:
    mask = grid.valid_mask & (grid.likelihoods <= config.VISIBLE_THRESHOLD)
    return [
        GridPoint(float(lat), float(lng), float(likelihood))
        for lat, lng, likelihood in zip(
            grid.latitudes[mask], grid.longitudes[mask], grid.likelihoods[mask]
        )
    ]


def intersect_scans(
    first: Optional[ShadowGrid],
    second: Optional[ShadowGrid]
) -> List[IntersectionPoint]:
    """
    Schnittpunkte in der Reihenfolge der sichtbaren Punkte des zweiten Scans.

    Raises:
        IntersectionUnavailable: einer der Scans fehlt
    """
    if first is None or second is None:
        raise IntersectionUnavailable(
            "Für die Schnittmenge werden zwei abgeschlossene Analysen benötigt"
        )

    lookup: Dict[Tuple[float, float], GridPoint] = {
        coordinate_key(p.lat, p.lng): p for p in visible_subset(first)
    }

    points = []
    for second_point in visible_subset(second):
        first_point = lookup.get(coordinate_key(second_point.lat, second_point.lng))
        if first_point is not None:
            points.append(IntersectionPoint(
                lat=second_point.lat,
                lng=second_point.lng,
                combined_likelihood=max(first_point.likelihood, second_point.likelihood)
            ))

    return points


def estimate_intersection(points: List[IntersectionPoint]) -> BestLocationEstimate:
    """Gleiche Schätzung wie für Einzel-Scans, auf combined_likelihood."""
    return estimate_best_location(
        [p.lat for p in points],
        [p.lng for p in points],
        [p.combined_likelihood for p in points]
    )


def combine_scans(
    first: Optional[ShadowGrid],
    second: Optional[ShadowGrid]
) -> IntersectionResult:
    """
    Schnittmenge + gemeinsame Schätzung.

    Raises:
        IntersectionUnavailable: einer der Scans fehlt
        NoMatchFound: kein Schnittpunkt im Haupt-Band
    """
    points = intersect_scans(first, second)
    first_visible = len(visible_subset(first))
    second_visible = len(visible_subset(second))

    logger.info(
        "Schnittmenge: %d Punkte (sichtbar: %d / %d)",
        len(points), first_visible, second_visible
    )

    return IntersectionResult(
        points=tuple(points),
        first_visible_points=first_visible,
        second_visible_points=second_visible,
        estimate=estimate_intersection(points)
    )
