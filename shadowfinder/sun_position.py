"""
Sonnenstand-Berechnung

Zwei Provider mit identischer Schnittstelle:
- SpaSolarPosition: pvlib (NREL SPA), Standard
- NoaaSolarPosition: NOAA Solar Calculator Gleichungen in numpy, ~0.5° genau

``altitude()`` ist vektorisiert: der Grid-Scanner fragt eine ganze
Breitengrad-Zeile (720 Längengrade) auf einmal ab. Rückgabe in RADIANT.
"""

import math
from datetime import datetime, timezone
from typing import Tuple

import numpy as np
import pandas as pd
import pvlib


def to_utc_timestamp(when) -> pd.Timestamp:
    """Naive Zeitpunkte werden als UTC interpretiert (wie im Frontend)."""
    stamp = pd.Timestamp(when)
    if stamp.tzinfo is None:
        return stamp.tz_localize("UTC")
    return stamp.tz_convert("UTC")


class SolarPositionProvider:
    """
    Schnittstelle für Sonnenstand-Provider.

    altitude(when, latitudes, longitudes) -> Sonnenhöhe in Radiant,
    gleiche Form wie die (gebroadcasteten) Koordinaten.
    """

    name = "base"

    def altitude(self, when: datetime, latitudes, longitudes) -> np.ndarray:
        raise NotImplementedError


class SpaSolarPosition(SolarPositionProvider):
    """NREL Solar Position Algorithm via pvlib (ohne Refraktion)"""

    name = "spa"

    def altitude(self, when: datetime, latitudes, longitudes) -> np.ndarray:
        lat, lon = np.broadcast_arrays(
            np.asarray(latitudes, dtype=float),
            np.asarray(longitudes, dtype=float)
        )
        shape = lat.shape
        lat = lat.ravel()
        lon = lon.ravel()

        # pvlib rechnet elementweise: ein Zeitstempel pro Koordinate
        times = pd.DatetimeIndex([to_utc_timestamp(when)] * lat.size)

        solar_position = pvlib.solarposition.get_solarposition(
            time=times,
            latitude=lat,
            longitude=lon,
            method='nrel_numpy'
        )

        elevation = solar_position['elevation'].to_numpy(dtype=float)
        return np.deg2rad(elevation).reshape(shape)


class NoaaSolarPosition(SolarPositionProvider):
    """
    Sonnenstand nach den NOAA Solar Calculator Gleichungen.

    Deklination und Zeitgleichung hängen nur vom Zeitpunkt ab und werden
    einmal berechnet, nur Stundenwinkel und Zenit sind pro Koordinate.
    """

    name = "noaa"

    def altitude(self, when: datetime, latitudes, longitudes) -> np.ndarray:
        decl_deg, eq_of_time = _declination_and_equation_of_time(when)
        dt = to_utc_timestamp(when)
        minutes_utc = dt.hour * 60 + dt.minute + (dt.second + dt.microsecond / 1e6) / 60

        lat_rad = np.deg2rad(np.asarray(latitudes, dtype=float))
        lon = np.asarray(longitudes, dtype=float)
        decl_rad = math.radians(decl_deg)

        # Wahre Sonnenzeit -> Stundenwinkel
        true_solar_time = np.mod(minutes_utc + eq_of_time + 4 * lon, 1440)
        hour_angle_rad = np.deg2rad(true_solar_time / 4 - 180)

        cos_zenith = (np.sin(lat_rad) * math.sin(decl_rad) +
                      np.cos(lat_rad) * math.cos(decl_rad) * np.cos(hour_angle_rad))
        cos_zenith = np.clip(cos_zenith, -1.0, 1.0)

        # Elevation = 90° - Zenit
        return np.pi / 2 - np.arccos(cos_zenith)


def _declination_and_equation_of_time(when) -> Tuple[float, float]:
    """
    Deklination (Grad) und Zeitgleichung (Minuten) für einen UTC-Zeitpunkt.

    Reihenentwicklungen aus dem NOAA Solar Calculator, Polynome in
    julianischen Jahrhunderten seit J2000.
    """
    century = (to_utc_timestamp(when).to_julian_date() - 2451545.0) / 36525.0

    mean_longitude = np.polyval([0.0003032, 36000.76983, 280.46646], century) % 360
    mean_anomaly = np.deg2rad(np.polyval([-0.0001537, 35999.05029, 357.52911], century) % 360)
    eccentricity = np.polyval([-0.0000001267, -0.000042037, 0.016708634], century)

    equation_of_center = (
        np.sin(mean_anomaly) * np.polyval([-0.000014, -0.004817, 1.914602], century)
        + np.sin(2 * mean_anomaly) * np.polyval([-0.000101, 0.019993], century)
        + np.sin(3 * mean_anomaly) * 0.000289
    )

    # Nutation, Länge des aufsteigenden Mondknotens
    node = np.deg2rad(125.04 - 1934.136 * century)
    apparent_longitude = np.deg2rad(
        mean_longitude + equation_of_center - 0.00569 - 0.00478 * np.sin(node)
    )

    # Schiefe der Ekliptik, Bogensekunden-Anteil als Polynom
    obliquity_arcsec = np.polyval([0.001813, -0.00059, -46.815, 21.448], century)
    obliquity = np.deg2rad(23 + (26 + obliquity_arcsec / 60) / 60 + 0.00256 * np.cos(node))

    declination = np.rad2deg(np.arcsin(np.sin(obliquity) * np.sin(apparent_longitude)))

    y = np.tan(obliquity / 2) ** 2
    l0 = np.deg2rad(mean_longitude)
    eq_of_time = 4 * np.rad2deg(
        y * np.sin(2 * l0)
        - 2 * eccentricity * np.sin(mean_anomaly)
        + 4 * eccentricity * y * np.sin(mean_anomaly) * np.cos(2 * l0)
        - 0.5 * y * y * np.sin(4 * l0)
        - 1.25 * eccentricity * eccentricity * np.sin(2 * mean_anomaly)
    )

    return float(declination), float(eq_of_time)


_PROVIDERS = {
    SpaSolarPosition.name: SpaSolarPosition,
    NoaaSolarPosition.name: NoaaSolarPosition,
}


def get_solar_position_provider(name: str = "spa") -> SolarPositionProvider:
    """Provider per Name ('spa' oder 'noaa')"""
    try:
        return _PROVIDERS[name.lower()]()
    except KeyError:
        raise ValueError(
            f"Unbekanntes Sonnenstand-Backend '{name}' (erlaubt: {', '.join(sorted(_PROVIDERS))})"
        ) from None


def calculate_sun_position(lat, lon, when):
    """
    Berechnet Sonnenposition (Azimut & Elevation) mit pvlib (NREL SPA).

    Args:
        lat: Breitengrad in Grad
        lon: Längengrad in Grad
        when: datetime (naiv = UTC) oder ISO-String

    Returns:
        (azimuth, elevation) in Grad
    """
    timestamp = to_utc_timestamp(when)

    solar_position = pvlib.solarposition.get_solarposition(
        time=pd.DatetimeIndex([timestamp]),
        latitude=lat,
        longitude=lon,
        method='nrel_numpy'
    )

    azimuth = float(solar_position['azimuth'].iloc[0])
    elevation = float(solar_position['elevation'].iloc[0])

    return azimuth, elevation


def utc_now() -> datetime:
    return datetime.now(timezone.utc)
