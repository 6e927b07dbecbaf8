"""
Road snapping through the Mapbox Directions and Map Matching APIs.

Snapping only forwards raw fixes to Mapbox and splices whatever polylines
come back. A pair or chunk whose request fails is skipped.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import requests

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 15  # seconds

DIRECTIONS_URL = "https://api.mapbox.com/directions/v5/mapbox/{profile}/{coords}"
MATCHING_URL = "https://api.mapbox.com/matching/v5/mapbox/{profile}/{coords}"

PROFILES = ("cycling", "driving", "walking")
MAX_PAIRS = 200
CHUNK_SIZE = 100
CHUNK_OVERLAP = 1
MATCH_RADIUS_METERS = 25

LngLat = tuple[float, float]


def _format_coords(coords: Sequence[LngLat]) -> str:
    return ";".join(f"{lng},{lat}" for lng, lat in coords)


def _to_lnglat_list(raw) -> list[LngLat]:
    points: list[LngLat] = []
    if not isinstance(raw, list):
        return points
    for item in raw:
        try:
            lng, lat = float(item[0]), float(item[1])
        except (TypeError, ValueError, IndexError):
            continue
        if math.isfinite(lng) and math.isfinite(lat):
            points.append((lng, lat))
    return points


@dataclass
class MapboxClient:
    token: str
    session: requests.Session = field(default_factory=requests.Session)

    def _get_json(self, url: str, params: dict) -> Optional[dict]:
        params = dict(params, access_token=self.token)
        try:
            response = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as exc:
            logger.warning("Mapbox request failed: %s", exc)
            return None
        if not response.ok:
            logger.warning("Mapbox returned HTTP %s", response.status_code)
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("Mapbox returned a non-JSON body")
            return None

    def directions_snap_coords(
        self, start: LngLat, end: LngLat, profile: str = "cycling"
    ) -> Optional[list[LngLat]]:
        """
        Route between two fixes along the road network.

        Returns:
            The route polyline as [lng, lat] pairs, or None when Mapbox has
            no usable route (fewer than two coordinates).
        """
        url = DIRECTIONS_URL.format(profile=profile, coords=_format_coords([start, end]))
        payload = self._get_json(
            url,
            {
                "geometries": "geojson",
                "overview": "full",
                "alternatives": "false",
                "steps": "false",
            },
        )
        routes = (payload or {}).get("routes") or []
        if not routes:
            return None
        coords = _to_lnglat_list(((routes[0] or {}).get("geometry") or {}).get("coordinates"))
        return coords if len(coords) >= 2 else None

    def directions_snap_pairs(
        self, coords: Sequence[LngLat], profile: str = "cycling", max_pairs: int = MAX_PAIRS
    ) -> list[list[LngLat]]:
        if len(coords) < 2:
            return []
        segments: list[list[LngLat]] = []
        for i in range(min(len(coords) - 1, max_pairs)):
            snapped = self.directions_snap_coords(coords[i], coords[i + 1], profile)
            if snapped:
                segments.append(snapped)
        return segments

    def map_match_chunks(
        self,
        coords: Sequence[LngLat],
        profile: str = "cycling",
        chunk_size: int = CHUNK_SIZE,
        overlap: int = CHUNK_OVERLAP,
    ) -> list[list[LngLat]]:
        """
        Map-match the trace in overlapping chunks and return one segment per
        chunk that matched.
        """
        if len(coords) < 2:
            return []
        segments: list[list[LngLat]] = []
        step = max(2, chunk_size - overlap)
        for start in range(0, len(coords) - 1, step):
            chunk = list(coords[start : min(len(coords), start + chunk_size)])
            if len(chunk) < 2:
                break
            url = MATCHING_URL.format(profile=profile, coords=_format_coords(chunk))
            payload = self._get_json(
                url,
                {
                    "geometries": "geojson",
                    "tidy": "true",
                    "radiuses": ";".join(str(MATCH_RADIUS_METERS) for _ in chunk),
                },
            )
            matchings = (payload or {}).get("matchings") or []
            if not matchings:
                continue
            snapped = _to_lnglat_list(
                ((matchings[0] or {}).get("geometry") or {}).get("coordinates")
            )
            if len(snapped) >= 2:
                segments.append(snapped)
        return segments
