from __future__ import annotations

"""
Maidenhead locator helpers.

FT8 standard messages carry 4-character grids (field + square); 6-character
locators (with subsquare) are accepted for completeness.
"""

import re
from typing import Tuple

_GRID_RE = re.compile(r"^[A-R]{2}[0-9]{2}(?:[A-X]{2})?$")


def is_grid(text: str) -> bool:
    return bool(_GRID_RE.match(text.strip().upper()))


def grid_to_latlon(grid: str) -> Tuple[float, float]:
    """Return (lat, lon) in degrees of the centre of a 4- or 6-character locator."""
    g = grid.strip().upper()
    if not _GRID_RE.match(g):
        raise ValueError(f"not a Maidenhead locator: {grid!r}")
    lon = (ord(g[0]) - ord("A")) * 20.0 - 180.0 + int(g[2]) * 2.0
    lat = (ord(g[1]) - ord("A")) * 10.0 - 90.0 + int(g[3]) * 1.0
    if len(g) == 6:
        lon += (ord(g[4]) - ord("A")) * (2.0 / 24.0) + 1.0 / 24.0
        lat += (ord(g[5]) - ord("A")) * (1.0 / 24.0) + 0.5 / 24.0
    else:
        lon += 1.0
        lat += 0.5
    return lat, lon


def latlon_to_grid(lat: float, lon: float, precision: int = 4) -> str:
    """Return the 4- or 6-character locator containing (lat, lon)."""
    if precision not in (4, 6):
        raise ValueError("precision must be 4 or 6")
    if not -90.0 <= lat <= 90.0 or not -180.0 <= lon <= 180.0:
        raise ValueError(f"coordinates out of range: {lat}, {lon}")
    # Clamp the poles and the antimeridian into the last square
    x = min(lon + 180.0, 360.0 - 1e-9)
    y = min(lat + 90.0, 180.0 - 1e-9)
    field_lon, x = divmod(x, 20.0)
    field_lat, y = divmod(y, 10.0)
    sq_lon, x = divmod(x, 2.0)
    sq_lat, y = divmod(y, 1.0)
    grid = f"{chr(ord('A') + int(field_lon))}{chr(ord('A') + int(field_lat))}{int(sq_lon)}{int(sq_lat)}"
    if precision == 6:
        sub_lon = int(x / (2.0 / 24.0))
        sub_lat = int(y / (1.0 / 24.0))
        grid += f"{chr(ord('a') + sub_lon)}{chr(ord('a') + sub_lat)}"
    return grid

