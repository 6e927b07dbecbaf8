"""
Post one fake GPS ping to the tracker ingest endpoint.

Requires IOT_SHARED_SECRET in the environment (same value as the API).
"""

from __future__ import annotations

import argparse
import logging
import os
import random
import time

import requests

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Send a sample tracker ping")
    parser.add_argument("device_id", nargs="?", default="dev-001")
    parser.add_argument("lat", nargs="?", type=float, default=13.7565)
    parser.add_argument("lng", nargs="?", type=float, default=121.0583)
    parser.add_argument(
        "--api-base", default=os.environ.get("API_BASE", "http://localhost:8000/api")
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    secret = os.environ.get("IOT_SHARED_SECRET", "")
    if not secret:
        logger.error("IOT_SHARED_SECRET is required in env")
        return 1

    body = {
        "deviceId": args.device_id,
        "latitude": args.lat,
        "longitude": args.lng,
        "speed": 5 + random.random() * 10,
        "heading": random.randrange(360),
        "timestamp": int(time.time() * 1000),
        "battery": 80,
    }
    try:
        response = requests.post(
            f"{args.api_base.rstrip('/')}/tracker",
            json=body,
            headers={"Authorization": f"Bearer {secret}"},
            timeout=10,
        )
    except requests.RequestException as exc:
        logger.error("Request failed: %s", exc)
        return 1
    logger.info("%s %s", response.status_code, response.text)
    return 0 if response.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
