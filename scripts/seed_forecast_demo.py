"""
Seed demo bikes, rides, issues and a maintenance forecast so the admin
maintenance page has something to show for next month.
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from bikerental.dependencies import get_analytics_store, get_db_client
from bikerental.maintenance import seed_forecast_demo

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed maintenance forecast demo data")
    parser.add_argument("--today", type=date.fromisoformat, default=None, help="YYYY-MM-DD")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for repeatable data")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    counts = seed_forecast_demo(
        get_db_client(),
        get_analytics_store(),
        today=args.today,
        rng=random.Random(args.seed),
    )
    logger.info("Seeded forecast demo: %s", counts)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
