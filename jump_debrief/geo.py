"""Drop-zone scale geometry: local east/north projection and distances."""

from __future__ import annotations
import numpy as np

EARTH_R_M = 6371000.0

def latlon_to_local_xy_m(lat_deg, lon_deg, lat0_deg: float, lon0_deg: float):
    """
    Small-area approximation: converts lat/lon to local east/north meters around (lat0, lon0).
    Good enough for a drop zone (landing area, final approach).
    """
    lat = np.deg2rad(np.asarray(lat_deg, dtype=float))
    lon = np.deg2rad(np.asarray(lon_deg, dtype=float))
    lat0 = np.deg2rad(lat0_deg)
    lon0 = np.deg2rad(lon0_deg)

    dlat = lat - lat0
    dlon = lon - lon0

    x = EARTH_R_M * np.cos(lat0) * dlon
    y = EARTH_R_M * dlat
    return x, y

def distance_m(lat_deg: float, lon_deg: float, target_lat_deg: float, target_lon_deg: float) -> float:
    """Ground distance from a point to a target, in meters (target is the local origin)."""
    x, y = latlon_to_local_xy_m(lat_deg, lon_deg, target_lat_deg, target_lon_deg)
    return float(np.hypot(x, y))
