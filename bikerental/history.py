"""
Rental history shaping for the rider's own history page and the admin
history table.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date, datetime, time as dtime, tzinfo
from typing import Iterable, Mapping, Optional

from bikerental.analytics_db import RentalRecord
from bikerental.db import ApplicationRecord, BikeRecord, UserRecord
from bikerental.types import iso, normalize_status

CSV_HEADERS = ["User", "Email", "College", "Bike", "Start", "End", "Status"]


@dataclass
class HistoryItem:
    id: str
    user_id: str
    bike_id: Optional[str]
    bike_name: Optional[str]
    start_date: Optional[float]
    end_date: Optional[float]
    status: str
    total_cost: Optional[float]
    created_at: Optional[float]

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "bikeId": self.bike_id,
            "bikeName": self.bike_name,
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "status": self.status,
            "totalCost": self.total_cost,
            "createdAt": iso(self.created_at),
        }


def application_row_status(application: ApplicationRecord) -> str:
    status = normalize_status(application.status)
    if status in ("rejected", "declined"):
        return "Rejected"
    if application.bike_id:
        return "Rented"
    return status.capitalize() if status else "Submitted"


def rental_item(
    rental: RentalRecord, fallback_user_id: str, bike_names: Mapping[str, str]
) -> HistoryItem:
    bike_name = rental.bike_name
    if bike_name is None and rental.bike_id:
        bike_name = bike_names.get(rental.bike_id) or None
    return HistoryItem(
        id=rental.id,
        user_id=rental.user_id or fallback_user_id,
        bike_id=rental.bike_id,
        bike_name=bike_name,
        start_date=rental.start_date,
        end_date=rental.end_date,
        status="Completed" if rental.is_completed else (rental.status or "active").capitalize(),
        total_cost=rental.total_cost,
        created_at=rental.created_at,
    )


def application_item(
    application: ApplicationRecord, bike_names: Mapping[str, str]
) -> HistoryItem:
    started = application.assigned_at or application.created_at
    return HistoryItem(
        id=f"app-{application.id}",
        user_id=application.user_id,
        bike_id=application.bike_id,
        bike_name=bike_names.get(application.bike_id) if application.bike_id else None,
        start_date=started,
        end_date=None,
        status=application_row_status(application),
        total_cost=None,
        created_at=started,
    )


def _sort_ts(item: HistoryItem) -> float:
    return item.created_at or item.start_date or 0.0


def my_history(
    *,
    user_id: str,
    rentals: Iterable[RentalRecord],
    applications: Iterable[ApplicationRecord],
    bikes: Iterable[BikeRecord],
    page: int = 1,
    limit: int = 10,
    sort: str = "-createdAt",
    include_applications: bool = False,
) -> dict:
    """
    Page through a rider's completed rentals.

    Only rentals whose status is `completed` or that carry an end date are
    listed. With `include_applications`, one row per application without a
    matching rental is appended using the normalized application status.
    """
    page = max(1, page)
    limit = min(100, max(1, limit))
    descending = (sort or "-createdAt").strip().lstrip("+").startswith("-")

    bike_names = {b.id: b.name for b in bikes}
    rentals = list(rentals)
    items = [
        rental_item(r, user_id, bike_names) for r in rentals if r.is_completed
    ]
    if include_applications:
        seen = {r.application_id for r in rentals if r.application_id}
        items.extend(
            application_item(a, bike_names)
            for a in applications
            if a.id not in seen
        )

    items.sort(key=_sort_ts, reverse=descending)
    total = len(items)
    start = (page - 1) * limit
    return {
        "items": [item.as_dict() for item in items[start : start + limit]],
        "total": total,
        "page": page,
        "limit": limit,
    }


@dataclass
class AdminHistoryItem:
    id: str
    type: str
    status: str
    start_date: Optional[float]
    end_date: Optional[float]
    created_at: Optional[float]
    user: Optional[dict]
    bike: Optional[dict]
    college: Optional[str]
    application: Optional[dict]

    @property
    def user_key(self) -> str:
        if self.user and self.user.get("id"):
            return self.user["id"]
        return (self.application or {}).get("id") or ""

    @property
    def display_name(self) -> str:
        if self.user and self.user.get("name"):
            return self.user["name"]
        app = self.application or {}
        return f"{app.get('firstName', '')} {app.get('lastName', '')}".strip()

    @property
    def display_email(self) -> str:
        return (self.user or {}).get("email") or (self.application or {}).get("email") or ""

    @property
    def bike_name(self) -> str:
        return (self.bike or {}).get("name") or ""

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "status": self.status,
            "startDate": iso(self.start_date),
            "endDate": iso(self.end_date),
            "createdAt": iso(self.created_at),
            "user": self.user,
            "bike": self.bike,
            "bikeName": self.bike_name or None,
            "college": self.college,
            "application": self.application,
        }


def _application_summary(application: Optional[ApplicationRecord]) -> Optional[dict]:
    if application is None:
        return None
    return {
        "id": application.id,
        "firstName": application.first_name,
        "lastName": application.last_name,
        "email": application.email,
        "college": application.college,
    }


def admin_history_items(
    *,
    rentals: Iterable[RentalRecord],
    applications: Iterable[ApplicationRecord],
    users: Iterable[UserRecord],
    bikes: Iterable[BikeRecord],
) -> list[AdminHistoryItem]:
    """Completed rentals plus rejected applications, newest first."""
    users_by_id = {u.id: u for u in users}
    users_by_email = {u.email: u for u in users_by_id.values()}
    bikes_by_id = {b.id: b for b in bikes}
    applications = list(applications)
    apps_by_id = {a.id: a for a in applications}

    items: list[AdminHistoryItem] = []
    for rental in rentals:
        if not rental.is_completed:
            continue
        application = apps_by_id.get(rental.application_id or "")
        user = users_by_id.get(rental.user_id or "") or users_by_email.get(rental.email or "")
        bike = bikes_by_id.get(rental.bike_id or "")
        bike_name = (bike.name if bike else None) or rental.bike_name
        items.append(
            AdminHistoryItem(
                id=rental.id,
                type="rental",
                status="Completed",
                start_date=rental.start_date,
                end_date=rental.end_date,
                created_at=rental.created_at,
                user={"id": user.id, "name": user.name, "email": user.email} if user else None,
                bike={"id": rental.bike_id, "name": bike_name} if rental.bike_id or bike_name else None,
                college=rental.college or (application.college if application else None),
                application=_application_summary(application),
            )
        )

    for application in applications:
        if normalize_status(application.status) != "rejected":
            continue
        user = users_by_id.get(application.user_id)
        items.append(
            AdminHistoryItem(
                id=f"app-{application.id}",
                type="rejected",
                status="Rejected",
                start_date=application.created_at,
                end_date=None,
                created_at=application.created_at,
                user={"id": user.id, "name": user.name, "email": user.email} if user else None,
                bike=None,
                college=application.college,
                application=_application_summary(application),
            )
        )

    items.sort(key=lambda i: i.start_date or i.created_at or 0.0, reverse=True)
    return items


def _day_bounds(
    date_from: Optional[date], date_to: Optional[date], tz: tzinfo
) -> tuple[Optional[float], Optional[float]]:
    from_ts = (
        datetime.combine(date_from, dtime.min, tzinfo=tz).timestamp() if date_from else None
    )
    to_ts = (
        datetime.combine(date_to, dtime.max, tzinfo=tz).timestamp() if date_to else None
    )
    return from_ts, to_ts


def filter_admin_history(
    items: Iterable[AdminHistoryItem],
    *,
    tz: tzinfo,
    q: Optional[str] = None,
    user_id: Optional[str] = None,
    college: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> list[AdminHistoryItem]:
    """
    Apply the admin table filters. The date range is inclusive by day and
    keeps every item whose [start, end] interval overlaps it.
    """
    needle = (q or "").strip().lower()
    from_ts, to_ts = _day_bounds(date_from, date_to, tz)
    result = []
    for item in items:
        if needle:
            app = item.application or {}
            haystack = [
                (item.user or {}).get("name"),
                (item.user or {}).get("email"),
                item.bike_name,
                item.college,
                app.get("college"),
                f"{app.get('firstName', '')} {app.get('lastName', '')}",
            ]
            if not any(needle in (value or "").lower() for value in haystack):
                continue
        if user_id and item.user_key != user_id:
            continue
        if college and (item.college or "").lower() != college.lower():
            continue
        start = item.start_date if item.start_date is not None else item.created_at
        end = item.end_date if item.end_date is not None else start
        if from_ts is not None and (end or 0.0) < from_ts:
            continue
        if to_ts is not None and (start or 0.0) > to_ts:
            continue
        result.append(item)
    return result


def users_with_history(items: Iterable[AdminHistoryItem]) -> list[dict]:
    acc: dict[str, dict] = {}
    for item in items:
        key = item.user_key
        if not key:
            continue
        entry = acc.setdefault(
            key,
            {
                "id": key,
                "name": item.display_name or "Unnamed",
                "email": item.display_email,
                "count": 0,
                "bikes": set(),
            },
        )
        entry["count"] += 1
        if item.bike_name:
            entry["bikes"].add(item.bike_name)
    users = [dict(u, bikes=sorted(u["bikes"])) for u in acc.values()]
    return sorted(users, key=lambda u: (-u["count"], u["name"]))


def colleges_with_history(items: Iterable[AdminHistoryItem]) -> list[dict]:
    counts: dict[str, int] = {}
    for item in items:
        name = (item.college or "").strip()
        if name:
            counts[name] = counts.get(name, 0) + 1
    return [
        {"name": name, "count": count}
        for name, count in sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def _local(ts: Optional[float], tz: tzinfo) -> str:
    if ts is None:
        return ""
    return datetime.fromtimestamp(ts, tz).strftime("%Y-%m-%d %H:%M")


def history_csv(items: Iterable[AdminHistoryItem], tz: tzinfo) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for item in items:
        writer.writerow(
            [
                item.display_name,
                item.display_email,
                item.college or (item.application or {}).get("college") or "",
                item.bike_name,
                _local(item.start_date, tz),
                _local(item.end_date, tz),
                item.status or "Completed",
            ]
        )
    return output.getvalue()
