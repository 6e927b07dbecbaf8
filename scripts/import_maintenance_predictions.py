"""
Load precomputed maintenance output into the analytics store.

The JSON file has the same shape the maintenance service returns from
/train: {"metrics": {...}, "predictions": [...], "forecast": [...]}.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bikerental.dependencies import get_analytics_store
from bikerental.maintenance import apply_training_result

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Import maintenance predictions from JSON")
    parser.add_argument("path", type=Path, help="Path to the predictions JSON file")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    try:
        result = json.loads(args.path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.error("Could not read %s: %s", args.path, exc)
        return 1
    if not isinstance(result, dict):
        logger.error("%s must contain a JSON object", args.path)
        return 1

    stored = apply_training_result(get_analytics_store(), result)
    logger.info("Imported %s", stored)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
