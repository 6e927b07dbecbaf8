"""
Real-time key-value store for GPS pings.

Each device owns a tree `{prefix}:devices:{deviceId}:telemetry` whose
entries are raw JSON objects keyed by a push key. Writing the same key
twice keeps the last write.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import redis

from bikerental.telemetry import TelemetryPoint, parse_points

logger = logging.getLogger(__name__)


class TelemetryStore(Protocol):
    def push(self, device_id: str, key: str, entry: dict) -> None:
        ...

    def read(self, device_id: str) -> Dict[str, dict]:
        ...

    def latest(self, device_id: str) -> Optional[TelemetryPoint]:
        ...


def _latest_point(entries: Dict[str, dict]) -> Optional[TelemetryPoint]:
    points = parse_points(entries)
    return points[-1] if points else None


@dataclass
class InMemoryTelemetryStore:
    devices: Dict[str, Dict[str, dict]] = field(default_factory=dict)

    def push(self, device_id: str, key: str, entry: dict) -> None:
        self.devices.setdefault(device_id, {})[key] = dict(entry)

    def read(self, device_id: str) -> Dict[str, dict]:
        return dict(self.devices.get(device_id, {}))

    def latest(self, device_id: str) -> Optional[TelemetryPoint]:
        return _latest_point(self.devices.get(device_id, {}))


@dataclass
class RedisTelemetryStore:
    url: str
    prefix: str = "tracker"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, device_id: str) -> str:
        return f"{self.prefix}:devices:{device_id}:telemetry"

    def push(self, device_id: str, key: str, entry: dict) -> None:
        self.client.hset(self._key(device_id), key, json.dumps(entry))

    def read(self, device_id: str) -> Dict[str, dict]:
        raw = self.client.hgetall(self._key(device_id)) or {}
        entries: Dict[str, dict] = {}
        for key, value in raw.items():
            name = key.decode("utf-8") if isinstance(key, bytes) else str(key)
            try:
                decoded = json.loads(value)
            except (TypeError, ValueError):
                logger.warning("Skipping undecodable telemetry entry %s/%s", device_id, name)
                continue
            if isinstance(decoded, dict):
                entries[name] = decoded
        return entries

    def latest(self, device_id: str) -> Optional[TelemetryPoint]:
        return _latest_point(self.read(device_id))
