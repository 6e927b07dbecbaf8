"""
Bike inventory and the rider-facing views of the current rental.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from bikerental.auth import AuthUser, require_admin, resolve_identity
from bikerental.db import BikeRecord, DbClient
from bikerental.dependencies import get_db_client
from bikerental.routes.applications import application_with_bike
from bikerental.schemas import CreateBikeRequest
from bikerental.types import BikeStatus, iso
from bikerental.workflows import current_assignment, latest_rented_application

router = APIRouter(tags=["bikes"])


@router.get("/bikes")
def list_bikes(db: DbClient = Depends(get_db_client)):
    """All bikes by name, each with its most recent application."""
    bikes = []
    for bike in db.list_bikes():
        latest = db.list_applications(bike_id=bike.id)[:1]
        payload = bike.as_dict()
        payload["applications"] = [a.as_dict() for a in latest]
        bikes.append(payload)
    return {"success": True, "bikes": bikes}


@router.get("/bikes/{bike_id}")
def get_bike(bike_id: str, db: DbClient = Depends(get_db_client)):
    bike = db.get_bike(bike_id.strip())
    if bike is None:
        raise HTTPException(status_code=404, detail="Bike not found")
    return {
        "success": True,
        "bike": {"id": bike.id, "name": bike.name or None, "deviceId": bike.device_id},
    }


@router.post("/admin/bikes", status_code=201)
def create_bike(
    payload: CreateBikeRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    bike = db.create_bike(
        BikeRecord(
            name=payload.name.strip(),
            plate_number=(payload.plate_number or "").strip() or None,
            device_id=(payload.device_id or "").strip() or None,
            status=BikeStatus.AVAILABLE.value,
        )
    )
    return {"success": True, "bike": bike.as_dict()}


@router.get("/dashboard")
def dashboard(
    user_id: Optional[str] = Query(None, alias="userId"),
    email: Optional[str] = Query(None),
    db: DbClient = Depends(get_db_client),
):
    if not user_id and not email:
        raise HTTPException(status_code=400, detail="Email or userId is required.")
    if user_id:
        applications = db.list_applications(user_id=user_id)
    else:
        applications = db.list_applications(email=email)
    bikes = {b.id: b for b in db.list_bikes()}
    return {
        "success": True,
        "applications": [application_with_bike(a, bikes) for a in applications],
    }


@router.get("/my-bike")
def my_bike(
    user_id: Optional[str] = Query(None, alias="userId"),
    db: DbClient = Depends(get_db_client),
):
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required.")
    application = latest_rented_application(db.list_applications(user_id=user_id))
    if application is None:
        raise HTTPException(status_code=404, detail="No rented bike found for this user.")
    bike = db.get_bike(application.bike_id)
    if bike is None:
        raise HTTPException(status_code=404, detail="Bike not found.")
    return {
        "success": True,
        "bike": bike.as_dict(),
        "application": {"id": application.id, "createdAt": iso(application.created_at)},
    }


@router.get("/me/assigned-bike")
def my_assigned_bike(
    identity: AuthUser = Depends(resolve_identity),
    db: DbClient = Depends(get_db_client),
):
    if identity.id:
        applications = db.list_applications(user_id=identity.id)
    else:
        applications = db.list_applications(email=identity.email)
    application = current_assignment(applications)
    if application is None:
        raise HTTPException(status_code=404, detail="No assigned bike")
    bike = db.get_bike(application.bike_id)
    return {
        "bikeId": application.bike_id,
        "bikeName": (bike.name or bike.plate_number) if bike else None,
        "applicationId": application.id,
        "assignedAt": iso(application.assigned_at or application.created_at),
        "deviceId": bike.device_id if bike else None,
    }
