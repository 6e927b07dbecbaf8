"""
Rental history and admin analytics endpoints.
"""

from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from bikerental.analytics import bike_ride_stats, college_usage, usage_buckets
from bikerental.analytics_db import AnalyticsStore, RentalRecord
from bikerental.auth import AuthUser, require_admin, resolve_identity
from bikerental.config import Settings, get_settings
from bikerental.db import DbClient
from bikerental.dependencies import get_analytics_store, get_db_client
from bikerental.history import (
    admin_history_items,
    colleges_with_history,
    filter_admin_history,
    history_csv,
    my_history,
    users_with_history,
)

router = APIRouter(tags=["history"])

Range = Literal["week", "month", "year"]


def _rentals_for(store: AnalyticsStore, identity: AuthUser) -> list[RentalRecord]:
    rentals = store.list_rentals(user_id=identity.id) if identity.id else []
    if not rentals and identity.email:
        rentals = store.list_rentals(email=identity.email)
    return rentals


@router.get("/rentalhistory/me")
def my_rental_history(
    page: int = Query(1),
    limit: int = Query(10),
    sort: str = Query("-createdAt"),
    include_applications: bool = Query(False, alias="includeApplications"),
    identity: AuthUser = Depends(resolve_identity),
    db: DbClient = Depends(get_db_client),
    store: AnalyticsStore = Depends(get_analytics_store),
):
    if identity.id:
        applications = db.list_applications(user_id=identity.id)
    else:
        applications = []
    if not applications and identity.email:
        applications = db.list_applications(email=identity.email)
    return my_history(
        user_id=identity.id,
        rentals=_rentals_for(store, identity),
        applications=applications,
        bikes=db.list_bikes(),
        page=page,
        limit=limit,
        sort=sort,
        include_applications=include_applications,
    )


@router.get("/admin/rental-history")
def admin_rental_history(
    q: Optional[str] = Query(None),
    user_id: Optional[str] = Query(None, alias="userId"),
    college: Optional[str] = Query(None),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    format: Literal["json", "csv"] = Query("json"),
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_settings),
):
    tz = settings.display_timezone
    items = admin_history_items(
        rentals=store.list_rentals(),
        applications=db.list_applications(),
        users=db.list_users(),
        bikes=db.list_bikes(),
    )
    filtered = filter_admin_history(
        items,
        tz=tz,
        q=q,
        user_id=user_id,
        college=college,
        date_from=date_from,
        date_to=date_to,
    )
    if format == "csv":
        return Response(
            content=history_csv(filtered, tz),
            media_type="text/csv",
            headers={"Content-Disposition": 'attachment; filename="rental-history.csv"'},
        )
    return {
        "items": [item.as_dict() for item in filtered],
        "total": len(filtered),
        "users": users_with_history(items),
        "colleges": colleges_with_history(items),
    }


def _activity(db: DbClient, store: AnalyticsStore):
    applications = db.list_applications()
    rentals = store.list_rentals()
    return applications, rentals


@router.get("/admin/usage")
def admin_usage(
    range_name: Range = Query("week", alias="range"),
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_settings),
):
    applications, rentals = _activity(db, store)
    return usage_buckets(
        range_name,
        [a.created_at for a in applications],
        [r.start_date for r in rentals],
        settings.display_timezone,
    )


@router.get("/admin/college-usage")
def admin_college_usage(
    range_name: Range = Query("week", alias="range"),
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_settings),
):
    applications, rentals = _activity(db, store)
    return college_usage(
        range_name,
        [(a.created_at, a.college) for a in applications],
        [(r.start_date, r.college) for r in rentals],
        settings.display_timezone,
    )


@router.get("/analytics/by-bike")
def analytics_by_bike(
    bike_id: Optional[str] = Query(None, alias="bikeId"),
    bike_name: Optional[str] = Query(None, alias="bikeName"),
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_settings),
):
    bike_id = (bike_id or "").strip()
    bike_name = (bike_name or "").strip()
    if not bike_id and not bike_name:
        raise HTTPException(status_code=400, detail="bikeId or bikeName is required")
    rides = store.list_rides(bike_id=bike_id) if bike_id else []
    if not rides and bike_name:
        rides = store.list_rides(bike_name=bike_name)
    stats = bike_ride_stats(rides, settings.display_timezone)
    stats["success"] = True
    return stats
