"""
Zentrale Konfiguration für das ShadowFinder Backend.

Die Gitter-Geometrie und die Band-Schwellen sind fest und NICHT konfigurierbar,
damit Ergebnisse bit-genau vergleichbar bleiben. Nur die Service-Einstellungen
(Sonnenstand-Backend, CORS, Logging) kommen aus Umgebungsvariablen.
"""

import os

# ─── GITTER ──────────────────────────────────────────────────────────────
LAT_MIN = -60.0
LAT_MAX = 84.5
LNG_MIN = -180.0
LNG_MAX = 179.5
GRID_STEP = 0.5  # Grad, in beiden Achsen

# ─── LIKELIHOOD ──────────────────────────────────────────────────────────
NIGHT_SENTINEL = -1.0  # Sonne am oder unter dem Horizont

# Inklusive Obergrenzen, Bänder überlappen sich
ULTRA_TIGHT_THRESHOLD = 0.05
TIGHT_THRESHOLD = 0.08
MAIN_BAND_THRESHOLD = 0.10  # nur für Bounding-Box und Standort-Schätzung
VISIBLE_THRESHOLD = 0.15

# ─── STANDORT-SCHÄTZUNG ──────────────────────────────────────────────────
KM_PER_DEGREE = 111.0
MIN_ACCURACY_KM = 1.0

# ─── SCHNITTMENGE ────────────────────────────────────────────────────────
INTERSECTION_KEY_DECIMALS = 1

# ─── SERVICE ─────────────────────────────────────────────────────────────
SOLAR_BACKEND = os.environ.get("SHADOWFINDER_SOLAR_BACKEND", "spa").lower()
CORS_ORIGINS = [
    origin.strip()
    for origin in os.environ.get(
        "SHADOWFINDER_CORS_ORIGINS", "http://localhost:4200"
    ).split(",")
    if origin.strip()
]
LOG_LEVEL = os.environ.get("SHADOWFINDER_LOG_LEVEL", "INFO").upper()
PROGRESS_EVERY_ROWS = int(os.environ.get("SHADOWFINDER_PROGRESS_EVERY_ROWS", "10"))
# Jede Session hält bis zu zwei volle Gitter (~5 MB pro Foto)
MAX_SESSIONS = int(os.environ.get("SHADOWFINDER_MAX_SESSIONS", "20"))
