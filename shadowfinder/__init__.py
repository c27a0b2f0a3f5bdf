"""
ShadowFinder Package

Enthält:
- grid_search.py: globaler Grid-Scan (Schattenlänge vs. Sonnenhöhe)
- bands.py: Band-Statistik und Bounding-Box
- estimation.py: Schwerpunkt + Genauigkeitsradius
- intersection.py: Schnittmenge zweier Scans
- analysis.py: Ablauf und Zwei-Foto-Session
"""

from .analysis import (
    AnalysisRequest,
    AnalysisResult,
    AnalysisSession,
    SessionStore,
    analyze_pair,
    analyze_shadow,
    parse_timestamp
)
from .bands import BandRange, BandStatistics, classify_bands
from .errors import (
    IntersectionUnavailable,
    InvalidMeasurement,
    InvalidTimestamp,
    NoMatchFound,
    ShadowFinderError
)
from .estimation import BestLocationEstimate, estimate_best_location, estimate_from_grid
from .grid_search import NIGHT_SENTINEL, GridPoint, ShadowGrid, ShadowMeasurement, scan_grid
from .intersection import IntersectionPoint, IntersectionResult, combine_scans, intersect_scans
from .measurement import ImagePoint, measure_from_percentages, measure_shadow

__all__ = [
    'AnalysisRequest',
    'AnalysisResult',
    'AnalysisSession',
    'SessionStore',
    'analyze_pair',
    'analyze_shadow',
    'parse_timestamp',
    'BandRange',
    'BandStatistics',
    'classify_bands',
    'IntersectionUnavailable',
    'InvalidMeasurement',
    'InvalidTimestamp',
    'NoMatchFound',
    'ShadowFinderError',
    'BestLocationEstimate',
    'estimate_best_location',
    'estimate_from_grid',
    'NIGHT_SENTINEL',
    'GridPoint',
    'ShadowGrid',
    'ShadowMeasurement',
    'scan_grid',
    'IntersectionPoint',
    'IntersectionResult',
    'combine_scans',
    'intersect_scans',
    'ImagePoint',
    'measure_from_percentages',
    'measure_shadow'
]
