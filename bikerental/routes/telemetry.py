"""
GPS tracker ingest and route display.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from bikerental.auth import AuthUser, bearer_token, require_admin
from bikerental.config import Settings, get_settings
from bikerental.db import DbClient
from bikerental.dependencies import get_db_client, get_mapbox_client, get_telemetry_store
from bikerental.mapbox import MapboxClient
from bikerental.schemas import TrackerPing
from bikerental.telemetry import (
    bounds,
    build_route,
    line_feature_collection,
    multiline_feature_collection,
    points_feature_collection,
)
from bikerental.telemetry_store import TelemetryStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["telemetry"])


@router.post("/tracker", status_code=201)
def ingest_ping(
    payload: TrackerPing,
    request: Request,
    settings: Settings = Depends(get_settings),
    store: TelemetryStore = Depends(get_telemetry_store),
):
    if not settings.iot_shared_secret or bearer_token(request) != settings.iot_shared_secret:
        raise HTTPException(status_code=401, detail="Unauthorized")
    timestamp = payload.timestamp if payload.timestamp is not None else time.time() * 1000
    entry = {
        "lat": payload.latitude,
        "lng": payload.longitude,
        "speed": payload.speed,
        "heading": payload.heading,
        "battery": payload.battery,
        "timestamp": timestamp,
    }
    key = f"{int(timestamp):013d}-{uuid.uuid4().hex[:8]}"
    store.push(payload.device_id, key, entry)
    return {"ok": True, "deviceId": payload.device_id, "key": key}


def _snap_segments(
    mapbox: Optional[MapboxClient], coords, snap: Optional[str], profile: str
) -> list:
    if not snap or mapbox is None or len(coords) < 2:
        return []
    if snap == "pairs":
        return mapbox.directions_snap_pairs(coords, profile)
    return mapbox.map_match_chunks(coords, profile)


@router.get("/telemetry/{device_id}")
def device_route(
    device_id: str,
    snap: Optional[Literal["pairs", "match"]] = Query(None),
    profile: Literal["cycling", "driving", "walking"] = Query("cycling"),
    format: Literal["json", "geojson"] = Query("json"),
    store: TelemetryStore = Depends(get_telemetry_store),
    mapbox: Optional[MapboxClient] = Depends(get_mapbox_client),
):
    """
    Rebuild a device's route from every stored fix.

    `snap` forwards the route to Mapbox (pairwise Directions or chunked
    Map Matching); pieces Mapbox cannot snap are left out.
    """
    route = build_route(store.read(device_id.strip()))
    segments = _snap_segments(mapbox, route.coords, snap, profile)
    if format == "geojson":
        return {
            "deviceId": device_id,
            "line": line_feature_collection(route.coords),
            "points": points_feature_collection(route.coords),
            "snapped": multiline_feature_collection(segments),
            "bounds": bounds(route.coords),
            "distanceKm": route.distance_km,
            "lastFixTs": route.last_fix_ts,
        }
    payload = route.as_dict()
    payload["deviceId"] = device_id
    if snap:
        payload["snapped"] = [[[lng, lat] for lng, lat in seg] for seg in segments]
    return payload


@router.get("/admin/bikes/map")
def bikes_map(
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    store: TelemetryStore = Depends(get_telemetry_store),
):
    bikes = []
    for bike in db.list_bikes():
        last_fix = None
        latest = store.latest(bike.device_id) if bike.device_id else None
        if latest is not None:
            last_fix = {"lng": latest.lng, "lat": latest.lat, "ts": latest.ts}
        bikes.append(
            {
                "id": bike.id,
                "name": bike.name,
                "status": bike.status,
                "deviceId": bike.device_id,
                "lastFix": last_fix,
            }
        )
    return {"success": True, "bikes": bikes}
