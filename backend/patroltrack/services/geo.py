"""
Primitives géographiques : distance orthodromique (haversine) entre deux points.

Aucune dépendance externe. Les coordonnées sont en degrés décimaux ;
la validation des plages est faite en amont (schémas Pydantic).
"""

import math
from typing import NamedTuple

# Rayon équatorial WGS-84 (m)
EARTH_RADIUS_M = 6_378_137.0


class GeoPoint(NamedTuple):
    lat: float
    lng: float


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """
    Distance en mètres entre deux points sur une sphère (formule de haversine).

    Symétrique, toujours >= 0, et nulle pour deux points identiques.
    """
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    d_phi = math.radians(b.lat - a.lat)
    d_lambda = math.radians(b.lng - a.lng)

    h = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    # min() : les erreurs d'arrondi peuvent pousser h très légèrement au-dessus de 1
    c = 2.0 * math.asin(math.sqrt(min(1.0, h)))
    return EARTH_RADIUS_M * c


def is_valid_coordinate(lat: float, lng: float) -> bool:
    """Vrai si la latitude est dans [-90, 90] et la longitude dans [-180, 180]."""
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0
