"""
Maintenance forecasting display helpers.

Model fitting happens in an external service; this module only stores and
shapes its output (per-bike predictions, error metrics, weekly forecast).
"""

from __future__ import annotations

import logging
import random
import time
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional

import requests

from bikerental.analytics_db import (
    AnalyticsStore,
    ForecastPoint,
    ModelMetricsRecord,
    PredictionRecord,
    RideRecord,
)
from bikerental.db import BikeRecord, DbClient, IssueRecord
from bikerental.types import parse_timestamp

logger = logging.getLogger(__name__)

TRAIN_TIMEOUT = 300  # seconds
DEMO_BIKE_NAMES = ["BSU 001", "BSU 002", "BSU 003", "BSU 004", "BSU 005"]
DEMO_WEEKLY_KM = 20


def sorted_predictions(predictions: Iterable[PredictionRecord]) -> list[PredictionRecord]:
    """Fewest km remaining first; bikes without a prediction go last."""
    return sorted(
        predictions,
        key=lambda p: (
            p.predicted_km_until_maintenance is None,
            p.predicted_km_until_maintenance or 0.0,
        ),
    )


def week_start_monday(day: date) -> date:
    return day - timedelta(days=day.weekday())


def next_month_window(today: date) -> tuple[date, date]:
    """First day of next month and first day of the month after."""
    first_next = (today.replace(day=1) + timedelta(days=32)).replace(day=1)
    first_after = (first_next + timedelta(days=32)).replace(day=1)
    return first_next, first_after


def forecast_summary(points: Iterable[ForecastPoint], today: date) -> dict:
    """
    Total `yhat_plus_sim` over forecast weeks whose Monday falls in the
    next calendar month.
    """
    start, end = next_month_window(today)
    weeks = []
    for point in points:
        try:
            week = date.fromisoformat(point.week_start[:10])
        except ValueError:
            logger.warning("Ignoring forecast point with bad weekStart %r", point.week_start)
            continue
        if start <= week < end:
            weeks.append(point)
    return {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "weeks": len(weeks),
        "expectedMaintenance": round(sum(p.yhat_plus_sim for p in weeks), 2),
    }


def _float_or_none(value) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def apply_training_result(
    store: AnalyticsStore, result: dict, now: Optional[float] = None
) -> dict:
    """
    Persist a training response `{metrics, predictions, forecast}`.

    Returns counts of what was stored.
    """
    now = now if now is not None else time.time()
    stored = {"metrics": 0, "predictions": 0, "forecast": 0}

    metrics = result.get("metrics")
    if isinstance(metrics, dict):
        store.save_metrics(
            ModelMetricsRecord(
                mae=_float_or_none(metrics.get("mae")),
                mse=_float_or_none(metrics.get("mse")),
                r2=_float_or_none(metrics.get("r2")),
                updated_at=now,
            )
        )
        stored["metrics"] = 1

    for item in result.get("predictions") or []:
        bike_id = str(item.get("bikeId") or "").strip()
        if not bike_id:
            continue
        store.upsert_prediction(
            PredictionRecord(
                bike_id=bike_id,
                predicted_km_until_maintenance=_float_or_none(
                    item.get("predictedKmUntilMaintenance")
                ),
                updated_at=parse_timestamp(item.get("updatedAt")) or now,
            )
        )
        stored["predictions"] += 1

    forecast = result.get("forecast")
    if isinstance(forecast, list):
        points = [
            ForecastPoint(
                week_start=str(p.get("weekStart"))[:10],
                yhat=float(p.get("yhat") or 0.0),
                yhat_plus_sim=float(p.get("yhat_plus_sim", p.get("yhat")) or 0.0),
            )
            for p in forecast
            if p.get("weekStart")
        ]
        store.replace_forecast(points)
        stored["forecast"] = len(points)
    return stored


def request_training(service_url: str, session: Optional[requests.Session] = None) -> dict:
    """POST to the external maintenance service and return its JSON body."""
    http = session or requests
    response = http.post(f"{service_url.rstrip('/')}/train", timeout=TRAIN_TIMEOUT)
    response.raise_for_status()
    return response.json()


def seed_forecast_demo(
    db: DbClient,
    store: AnalyticsStore,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> dict:
    """
    Populate enough rides, issues, predictions and forecast weeks for the
    maintenance dashboard to show bikes at risk next month.
    """
    today = today or datetime.now(timezone.utc).date()
    rng = rng or random.Random()

    existing = {b.name: b for b in db.list_bikes()}
    bikes: list[BikeRecord] = []
    for name in DEMO_BIKE_NAMES:
        bike = existing.get(name) or db.create_bike(BikeRecord(name=name))
        bikes.append(bike)

    def ts(day: date) -> float:
        return datetime(day.year, day.month, day.day, 8, tzinfo=timezone.utc).timestamp()

    rides = 0
    for bike in bikes:
        for i in range(1, 9):
            store.add_ride(
                RideRecord(
                    bike_id=bike.id,
                    bike_name=bike.name,
                    ride_date=ts(today - timedelta(days=3 * i)),
                    distance_km=10.0,
                    duration_min=40.0,
                    avg_speed_kmh=15.0,
                )
            )
            rides += 1

    issues = 0
    for week in range(10, 0, -1):
        day = today - timedelta(days=7 * week)
        for i in range(2 + rng.randrange(3)):
            bike = bikes[(week + i) % len(bikes)]
            db.create_issue(
                IssueRecord(
                    subject="seeded issue",
                    message="seeded",
                    reported_by="system",
                    category="other",
                    priority="low",
                    bike_id=bike.id,
                    reported_at=ts(day),
                )
            )
            issues += 1

    base_week = week_start_monday(today)
    start, end = next_month_window(today)
    week_starts = []
    cursor = week_start_monday(start)
    while cursor < end:
        week_starts.append(cursor)
        cursor += timedelta(days=7)

    at_risk: dict[date, int] = {}
    predictions = 0
    for bike, week in zip(bikes, week_starts):
        weeks_to = max(0, round((week - base_week).days / 7))
        store.upsert_prediction(
            PredictionRecord(
                bike_id=bike.id,
                predicted_km_until_maintenance=float(max(10, weeks_to * DEMO_WEEKLY_KM)),
            )
        )
        at_risk[week] = at_risk.get(week, 0) + 1
        predictions += 1

    points = []
    cursor = base_week
    while cursor < end:
        baseline = 2.0 + rng.random()
        points.append(
            ForecastPoint(
                week_start=cursor.isoformat(),
                yhat=round(baseline, 2),
                yhat_plus_sim=round(baseline + at_risk.get(cursor, 0), 2),
            )
        )
        cursor += timedelta(days=7)
    store.replace_forecast(points)

    return {
        "bikes": len(bikes),
        "rides": rides,
        "issues": issues,
        "predictions": predictions,
        "forecastWeeks": len(points),
    }
