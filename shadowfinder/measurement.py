"""
Messwerte aus markierten Bildpunkten

Drei Punkte im selben Koordinatensystem: Objekt-Fuß, Objekt-Spitze,
Schatten-Spitze. Keine Validierung hier, das macht der Grid-Scanner.
"""

import math
from dataclasses import dataclass

from .grid_search import ShadowMeasurement


@dataclass(frozen=True)
class ImagePoint:
    x: float
    y: float


def percentage_to_pixels(point: ImagePoint, image_width: float, image_height: float) -> ImagePoint:
    """Prozent-Koordinaten (0-100) -> Pixel der angezeigten Bildgröße"""
    return ImagePoint(
        x=(point.x / 100) * image_width,
        y=(point.y / 100) * image_height
    )


def measure_shadow(object_base: ImagePoint, object_top: ImagePoint, shadow_tip: ImagePoint) -> ShadowMeasurement:
    return ShadowMeasurement(
        object_height=math.hypot(object_top.x - object_base.x, object_top.y - object_base.y),
        shadow_length=math.hypot(shadow_tip.x - object_base.x, shadow_tip.y - object_base.y)
    )


def measure_from_percentages(
    object_base: ImagePoint,
    object_top: ImagePoint,
    shadow_tip: ImagePoint,
    image_width: float,
    image_height: float
) -> ShadowMeasurement:
    """Alle drei Punkte mit der Anzeige-Größe des Objekt-Fußes umrechnen."""
    return measure_shadow(
        percentage_to_pixels(object_base, image_width, image_height),
        percentage_to_pixels(object_top, image_width, image_height),
        percentage_to_pixels(shadow_tip, image_width, image_height)
    )
