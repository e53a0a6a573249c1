"""Geospatial utilities (no external dependencies)."""

from __future__ import annotations

import math


def validate_coordinates(lat: float, lon: float) -> None:
    """Check that a lat/lon pair is finite and inside the valid WGS84 range.

    Args:
        lat: Latitude in degrees.
        lon: Longitude in degrees.

    Raises:
        ValueError: If the coordinates are out of range or not finite.
    """

    if not (math.isfinite(lat) and math.isfinite(lon)):
        raise ValueError(f"Non-finite coordinates: lat={lat!r}, lon={lon!r}")
    if not -90.0 <= lat <= 90.0:
        raise ValueError(f"Latitude out of range [-90, 90]: {lat!r}")
    if not -180.0 <= lon <= 180.0:
        raise ValueError(f"Longitude out of range [-180, 180]: {lon!r}")


def is_in_box(
    lat: float,
    lon: float,
    lat_a: float,
    lon_a: float,
    lat_b: float,
    lon_b: float,
) -> bool:
    """Check whether a point is inside or on the boundary of a lat/lon box.

    The box is spanned by two corners ``(lat_a, lon_a)`` and ``(lat_b, lon_b)``
    given in any order; min/max are taken per axis.
    """

    return min(lat_a, lat_b) <= lat <= max(lat_a, lat_b) and min(lon_a, lon_b) <= lon <= max(lon_a, lon_b)
