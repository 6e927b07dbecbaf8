"""
Route reconstruction from raw GPS telemetry.

Every read re-derives the route from the full point set: parse, order by
timestamp, convert to [lng, lat] pairs and sum great-circle distance
between consecutive fixes. Nothing is smoothed or filtered beyond dropping
unparseable entries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence

EARTH_RADIUS_KM = 6371.0

# Anything below this is an epoch in seconds rather than milliseconds.
SECONDS_EPOCH_CUTOFF = 2_000_000_000

LngLat = tuple[float, float]


@dataclass(frozen=True)
class TelemetryPoint:
    lng: float
    lat: float
    ts: float  # epoch milliseconds


@dataclass
class TelemetryRoute:
    coords: list[LngLat] = field(default_factory=list)
    last_fix_ts: Optional[float] = None
    distance_km: float = 0.0
    is_loaded: bool = False

    def as_dict(self) -> dict:
        return {
            "coords": [[lng, lat] for lng, lat in self.coords],
            "lastFixTs": self.last_fix_ts,
            "distanceKm": self.distance_km,
            "isLoaded": self.is_loaded,
        }


def _first_present(entry: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = entry.get(key)
        if value is not None:
            return value
    return None


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def parse_points(entries: Mapping[str, Any]) -> list[TelemetryPoint]:
    """
    Turn a device's telemetry tree into points ordered by timestamp.

    Accepts `lat`/`latitude`, `lng`/`longitude` and takes the timestamp from
    `ts`, `timestamp`, `time` or finally the entry key. Entries whose
    coordinates or timestamp are not finite numbers are skipped.
    """
    points: list[TelemetryPoint] = []
    for key, entry in entries.items():
        if not isinstance(entry, Mapping):
            continue
        raw_ts = _first_present(entry, "ts", "timestamp", "time")
        ts = _as_float(key if raw_ts is None else raw_ts)
        if not math.isfinite(ts):
            continue
        if ts < SECONDS_EPOCH_CUTOFF:
            ts *= 1000
        lat = _as_float(_first_present(entry, "lat", "latitude"))
        lng = _as_float(_first_present(entry, "lng", "longitude"))
        if not (math.isfinite(lat) and math.isfinite(lng)):
            continue
        points.append(TelemetryPoint(lng=lng, lat=lat, ts=ts))
    points.sort(key=lambda p: p.ts)
    return points


def haversine_km(a: LngLat, b: LngLat) -> float:
    """Great-circle distance in km between two [lng, lat] pairs."""
    d_lat = math.radians(b[1] - a[1])
    d_lng = math.radians(b[0] - a[0])
    lat1 = math.radians(a[1])
    lat2 = math.radians(b[1])
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def path_distance_km(coords: Sequence[LngLat]) -> float:
    total = 0.0
    for i in range(1, len(coords)):
        total += haversine_km(coords[i - 1], coords[i])
    return total


def build_route(entries: Optional[Mapping[str, Any]]) -> TelemetryRoute:
    """
    Build the route summary for a telemetry tree. `None` means there is no
    tree to read (e.g. a bike without a tracker) and yields an unloaded,
    empty route; an empty tree yields a loaded, empty route.
    """
    if entries is None:
        return TelemetryRoute()
    points = parse_points(entries)
    coords = [(p.lng, p.lat) for p in points]
    return TelemetryRoute(
        coords=coords,
        last_fix_ts=points[-1].ts if points else None,
        distance_km=path_distance_km(coords),
        is_loaded=True,
    )


def line_feature_collection(coords: Sequence[LngLat]) -> dict:
    features = []
    if len(coords) >= 2:
        features.append(
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[lng, lat] for lng, lat in coords],
                },
                "properties": {},
            }
        )
    return {"type": "FeatureCollection", "features": features}


def points_feature_collection(coords: Sequence[LngLat]) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {"type": "Point", "coordinates": [lng, lat]},
                "properties": {"index": i + 1},
            }
            for i, (lng, lat) in enumerate(coords)
        ],
    }


def multiline_feature_collection(segments: Sequence[Sequence[LngLat]]) -> dict:
    return {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[lng, lat] for lng, lat in segment],
                },
                "properties": {},
            }
            for segment in segments
            if len(segment) >= 2
        ],
    }


def bounds(coords: Sequence[LngLat]) -> Optional[list[list[float]]]:
    """South-west and north-east corners enclosing every coordinate."""
    if not coords:
        return None
    lngs = [c[0] for c in coords]
    lats = [c[1] for c in coords]
    return [[min(lngs), min(lats)], [max(lngs), max(lats)]]
