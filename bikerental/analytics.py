"""
Dashboard aggregations: usage timelines, college breakdowns, per-bike ride
stats and sustainability totals.

All calendar bucketing happens in the configured display timezone and is
anchored on the most recent activity rather than the wall clock, so a
quiet week still shows the last busy period.
"""

from __future__ import annotations

import re
import time
from datetime import date, datetime, timedelta, tzinfo
from typing import Iterable, Optional, Sequence

from bikerental.analytics_db import RideRecord

CO2_PER_KM_KG = 0.12
CALORIES_PER_KM = 30

RANGES = ("week", "month", "year")
WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
MONTH_LABELS = [
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
]
COLLEGES = ["CTE", "CET", "CAS", "CABE", "CICS"]
COLLEGE_ALIASES = {
    "CTE": 0,
    "COLLEGE OF TEACHER EDUCATION": 0,
    "TEACHER EDUCATION": 0,
    "CET": 1,
    "COLLEGE OF ENGINEERING TECHNOLOGY": 1,
    "ENGINEERING TECHNOLOGY": 1,
    "CAS": 2,
    "COLLEGE OF ARTS AND SCIENCES": 2,
    "ARTS AND SCIENCES": 2,
    "CABE": 3,
    "COLLEGE OF ACCOUNTANCY BUSINESS AND ECONOMICS": 3,
    "ACCOUNTANCY BUSINESS ECONOMICS": 3,
    "CICS": 4,
    "COLLEGE OF INFORMATICS AND COMPUTING SCIENCES": 4,
    "INFORMATICS COMPUTING SCIENCES": 4,
}


def _local_date(ts: float, tz: tzinfo) -> date:
    return datetime.fromtimestamp(ts, tz).date()


def _months_between(start: date, later: date) -> int:
    return (later.year - start.year) * 12 + (later.month - start.month)


def _shift_months(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def anchor_date(
    timestamps: Iterable[Optional[float]], tz: tzinfo, now: Optional[float] = None
) -> date:
    """Local date of the latest activity, or of `now` when there is none."""
    known = [ts for ts in timestamps if ts]
    latest = max(known) if known else (now if now is not None else time.time())
    return _local_date(latest, tz)


def _week_index(day: date, today: date) -> Optional[int]:
    start = today - timedelta(days=6)
    if day < start or day > today:
        return None
    return (day - start).days


def _month_index(day: date, today: date) -> Optional[int]:
    if day < today.replace(day=1) or day > today:
        return None
    return min(3, (day.day - 1) // 7)


def _year_index(day: date, today: date) -> Optional[int]:
    anchor = today.replace(day=1)
    start = _shift_months(anchor, -11)
    diff = _months_between(start, day.replace(day=1))
    return diff if 0 <= diff < 12 else None


_INDEXERS = {"week": _week_index, "month": _month_index, "year": _year_index}


def bucket_labels(range_name: str, today: date) -> list[str]:
    if range_name == "week":
        start = today - timedelta(days=6)
        return [WEEKDAY_LABELS[(start + timedelta(days=i)).weekday()] for i in range(7)]
    if range_name == "month":
        return ["W1", "W2", "W3", "W4"]
    start = _shift_months(today.replace(day=1), -11)
    return [MONTH_LABELS[(start.month - 1 + i) % 12] for i in range(12)]


def usage_buckets(
    range_name: str,
    application_times: Sequence[Optional[float]],
    rental_times: Sequence[Optional[float]],
    tz: tzinfo,
    now: Optional[float] = None,
) -> dict:
    """
    Count application submissions and rental starts per bucket.

    week: the seven local days ending on the anchor day.
    month: W1..W4 of the anchor's calendar month (days 29+ fold into W4).
    year: the twelve calendar months ending with the anchor's month.
    """
    if range_name not in _INDEXERS:
        raise ValueError(f"Unknown range: {range_name}")
    today = anchor_date(list(application_times) + list(rental_times), tz, now)
    labels = bucket_labels(range_name, today)
    index_of = _INDEXERS[range_name]

    def count(times: Sequence[Optional[float]]) -> list[int]:
        counts = [0] * len(labels)
        for ts in times:
            if not ts:
                continue
            idx = index_of(_local_date(ts, tz), today)
            if idx is not None:
                counts[idx] += 1
        return counts

    return {
        "range": range_name,
        "labels": labels,
        "apps": count(application_times),
        "rentals": count(rental_times),
    }


def resolve_college_index(name: Optional[str]) -> int:
    upper = (name or "").strip().upper()
    if not upper:
        return -1
    if upper in COLLEGES:
        return COLLEGES.index(upper)
    # Aliases only match as whole words of the name.
    words = f" {' '.join(re.findall(r'[A-Z0-9]+', upper))} "
    for alias, index in COLLEGE_ALIASES.items():
        if f" {alias} " in words:
            return index
    return -1


def college_usage(
    range_name: str,
    applications: Sequence[tuple[Optional[float], Optional[str]]],
    rentals: Sequence[tuple[Optional[float], Optional[str]]],
    tz: tzinfo,
    now: Optional[float] = None,
) -> dict:
    """Per-college counts of (timestamp, college) pairs inside the range window."""
    if range_name not in _INDEXERS:
        raise ValueError(f"Unknown range: {range_name}")
    today = anchor_date([ts for ts, _ in applications] + [ts for ts, _ in rentals], tz, now)
    index_of = _INDEXERS[range_name]

    def count(pairs) -> list[int]:
        counts = [0] * len(COLLEGES)
        for ts, college in pairs:
            if not ts or index_of(_local_date(ts, tz), today) is None:
                continue
            idx = resolve_college_index(college)
            if idx >= 0:
                counts[idx] += 1
        return counts

    return {
        "range": range_name,
        "colleges": list(COLLEGES),
        "applicationCounts": count(applications),
        "rentalCounts": count(rentals),
    }


def bike_ride_stats(
    rides: Iterable[RideRecord], tz: tzinfo, now: Optional[float] = None
) -> dict:
    """Today's totals, a trailing seven-day series and personal bests."""
    today = _local_date(now if now is not None else time.time(), tz)
    week_start = today - timedelta(days=6)
    by_day: dict[date, float] = {}
    distance_today = 0.0
    longest = 0.0
    fastest = 0.0

    for ride in rides:
        distance = float(ride.distance_km or 0)
        speed = float(ride.avg_speed_kmh or 0)
        if ride.ride_date:
            day = _local_date(ride.ride_date, tz)
            if week_start <= day <= today:
                by_day[day] = by_day.get(day, 0.0) + distance
            if day == today:
                distance_today += distance
        longest = max(longest, distance)
        fastest = max(fastest, speed)

    weekly = []
    for offset in range(6, -1, -1):
        day = today - timedelta(days=offset)
        distance = round(by_day.get(day, 0.0), 2)
        weekly.append(
            {
                "day": WEEKDAY_LABELS[day.weekday()],
                "date": day.isoformat(),
                "distance": distance,
                "calories": round(distance * CALORIES_PER_KM),
                "co2": round(distance * CO2_PER_KM_KG, 2),
            }
        )

    return {
        "distanceKmToday": round(distance_today, 2),
        "co2SavedKgToday": round(distance_today * CO2_PER_KM_KG, 2),
        "caloriesBurnedToday": round(distance_today * CALORIES_PER_KM),
        "weekly": weekly,
        "longestRideKm": round(longest, 1),
        "fastestSpeedKmh": round(fastest, 1),
    }


def sustainability_totals(distances: Iterable[float], co2: Iterable[float]) -> dict:
    total_distance = sum(float(d or 0) for d in distances)
    return {
        "totalDistanceKm": round(total_distance, 2),
        "totalCo2SavedKg": round(sum(float(c or 0) for c in co2), 2),
        "totalCalories": round(total_distance * CALORIES_PER_KM),
    }
