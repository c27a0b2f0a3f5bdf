"""
API Models für ShadowFinder Backend

- Messpunkte -> Objekthöhe / Schattenlänge
- Einzel-Analyse (ein Foto)
- Zwei-Foto-Session mit Schnittmenge
"""

from pydantic import BaseModel, Field, model_validator
from typing import List, Optional, Literal


# ============================================================================
# BASIC TYPES
# ============================================================================

class Point2D(BaseModel):
    """2D-Bildpunkt (Prozent 0-100 oder Pixel)"""
    x: float
    y: float


class CoordinateRange(BaseModel):
    """Bounding-Box in Grad"""
    latRange: List[float]
    lngRange: List[float]


BandName = Literal["ultra_tight", "tight", "main", "visible"]


# ============================================================================
# MEASUREMENTS
# ============================================================================

class MeasurementRequest(BaseModel):
    """Drei markierte Punkte: Objekt-Fuß, Objekt-Spitze, Schatten-Spitze"""
    objectBase: Point2D
    objectTop: Point2D
    shadowTip: Point2D
    unit: Literal["percent", "pixel"] = "percent"
    imageDisplayWidth: Optional[float] = Field(default=None, gt=0)
    imageDisplayHeight: Optional[float] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def display_size_for_percent(self):
        if self.unit == "percent" and (self.imageDisplayWidth is None or self.imageDisplayHeight is None):
            raise ValueError("Für Prozent-Koordinaten wird die Anzeige-Größe des Bildes benötigt")
        return self


class MeasurementResponse(BaseModel):
    """Messwerte in Pixeln"""
    objectHeight: float
    shadowLength: float


# ============================================================================
# ANALYSIS
# ============================================================================

class AnalysisRequest(BaseModel):
    """Analyse-Request für ein Foto"""
    objectHeight: float
    shadowLength: float
    knownTime: str  # ISO DateTime, ohne Zeitzone = UTC


class BandStatisticsModel(BaseModel):
    totalPoints: int
    validPoints: int
    nightPoints: int
    ultraTightBandPoints: int
    tightBandPoints: int
    visibleBandPoints: int
    mainBandPoints: int


class BestPoint(BaseModel):
    lat: float
    lng: float
    likelihood: float


class BestLocation(BaseModel):
    """Schwerpunkt des Haupt-Bands mit grobem Radius"""
    latitude: float
    longitude: float
    accuracyKm: float
    matchCount: int
    bestPoint: BestPoint


class AnalysisResponse(BaseModel):
    knownTime: str
    measurements: MeasurementResponse
    statistics: BandStatisticsModel
    mainBandCoordinates: CoordinateRange
    bestLocation: Optional[BestLocation] = None
    message: str = ""


class GridPointModel(BaseModel):
    lat: float
    lng: float
    likelihood: float


class PointsResponse(BaseModel):
    """Gefilterte Punkte für die Karten-Darstellung"""
    band: BandName
    count: int
    points: List[GridPointModel]


# ============================================================================
# SESSION (Zwei-Foto-Workflow)
# ============================================================================

class CreateSessionRequest(BaseModel):
    projectName: str = "Unnamed"


class CreateSessionResponse(BaseModel):
    sessionId: str
    projectName: str


class SessionSummary(BaseModel):
    sessionId: str
    projectName: str
    createdAt: str
    photos: List[Optional[AnalysisResponse]]
    intersectionAvailable: bool


class IntersectionPointModel(BaseModel):
    lat: float
    lng: float
    combinedLikelihood: float


class IntersectionResponse(BaseModel):
    count: int
    firstVisiblePoints: int
    secondVisiblePoints: int
    bestLocation: BestLocation
    points: List[IntersectionPointModel]


# ============================================================================
# SUN POSITION
# ============================================================================

class SunPositionResponse(BaseModel):
    latitude: float
    longitude: float
    datetime_utc: str
    azimuth: float
    elevation: float
