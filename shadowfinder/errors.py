"""
Fehlerklassen der Schatten-Analyse

Alle Fehler sind deterministische Eingabefehler. Es gibt keine transienten
Fehler im Kern, deshalb wird nirgends intern wiederholt.
"""


class ShadowFinderError(ValueError):
    """Basisklasse für alle Analyse-Fehler"""


class InvalidMeasurement(ShadowFinderError):
    """Objekthöhe oder Schattenlänge <= 0"""


class InvalidTimestamp(ShadowFinderError):
    """Zeitpunkt lässt sich nicht in einen gültigen UTC-Zeitpunkt auflösen"""


class NoMatchFound(ShadowFinderError):
    """Kein Gitterpunkt im Haupt-Band (Likelihood 0 bis 0.10)"""


class IntersectionUnavailable(ShadowFinderError):
    """Für die Schnittmenge fehlt einer der beiden Scans"""
