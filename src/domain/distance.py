"""
Distance calculation using the Haversine formula.

Assumption
----------
Shipments are tracked with great-circle (Haversine) distance instead of a
road-routing engine.  Route length is approximated by the polyline through
the shipment's waypoints (see ``progress.py``).

Points in the data model are ``(longitude, latitude)`` pairs, the same
order PostGIS and GeoJSON use.  ``haversine_km`` keeps the conventional
latitude-first argument order for scalar callers.

Complexity: O(1) per call.
"""

from __future__ import annotations

import math
from typing import Sequence

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(min(1.0, a)))


def distance_km(point_a: Sequence[float], point_b: Sequence[float]) -> float:
    """Distance in km between two ``(longitude, latitude)`` pairs."""
    return haversine_km(point_a[1], point_a[0], point_b[1], point_b[0])
