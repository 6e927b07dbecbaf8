"""
Rental applications: submission by students and staff, and the admin
review / assignment workflow.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile

from bikerental.analytics import sustainability_totals
from bikerental.analytics_db import AnalyticsStore
from bikerental.auth import AuthUser, get_optional_user, require_admin, require_admin_or_notify_secret
from bikerental.db import ActivityLogRecord, ApplicationRecord, BikeRecord, DbClient
from bikerental.dependencies import (
    get_analytics_store,
    get_db_client,
    get_queue_client,
    get_storage_client,
)
from bikerental.notifications import NOTIFIABLE_STATUSES, enqueue_job
from bikerental.queue import JobQueue
from bikerental.schemas import (
    ApplicationIdRequest,
    ApplicationStatusRequest,
    AssignBikeRequest,
    EvaluationRequest,
    NotifyStatusRequest,
    StaffApplicationRequest,
)
from bikerental.storage import StorageClient
from bikerental.types import BikeStatus, IssueCategory, JobKind, normalize_status
from bikerental.workflows import (
    ADMIN_LIST_FILTERS,
    STUDENT_OPTIONAL_FIELDS,
    STUDENT_REQUIRED_FIELDS,
    UploadedDocument,
    admin_application_list,
    assign_bike,
    end_rental,
    save_evaluation,
    set_application_status,
    submit_staff_application,
    submit_student_application,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["applications"])


def application_with_bike(
    application: ApplicationRecord, bikes: dict[str, BikeRecord]
) -> dict:
    payload = application.as_dict()
    bike = bikes.get(application.bike_id) if application.bike_id else None
    payload["bike"] = bike.as_dict() if bike else None
    return payload


async def _document(upload: Optional[UploadFile]) -> Optional[UploadedDocument]:
    if upload is None or not upload.filename:
        return None
    return UploadedDocument(
        filename=upload.filename,
        data=await upload.read(),
        content_type=upload.content_type,
    )


def _log_admin_action(db: DbClient, admin: Optional[AuthUser], kind: str, description: str) -> None:
    if admin is None:
        return
    db.add_activity_log(
        ActivityLogRecord(type=kind, admin_email=admin.email, description=description)
    )


@router.post("/applications")
async def submit_application(
    request: Request,
    indigencyFile: Optional[UploadFile] = File(None),
    gwaFile: Optional[UploadFile] = File(None),
    ecaFile: Optional[UploadFile] = File(None),
    itrFile: Optional[UploadFile] = File(None),
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    """
    Multipart student application. Text fields arrive as form fields; the
    four supporting documents are optional uploads.
    """
    form = await request.form()
    fields = {
        name: form.get(name)
        for name in STUDENT_REQUIRED_FIELDS + STUDENT_OPTIONAL_FIELDS
        if isinstance(form.get(name), str)
    }
    user_id = user.id if user else form.get("userId")
    documents = {
        "indigencyFile": await _document(indigencyFile),
        "gwaFile": await _document(gwaFile),
        "ecaFile": await _document(ecaFile),
        "itrFile": await _document(itrFile),
    }
    application = submit_student_application(db, storage, user_id, fields, documents)
    return {"success": True, "application": {"id": application.id}}


@router.post("/applications/staff")
def submit_staff(
    payload: StaffApplicationRequest,
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: DbClient = Depends(get_db_client),
):
    user_id = user.id if user else payload.user_id
    application = submit_staff_application(db, user_id, payload.form_fields())
    return {"success": True, "application": {"id": application.id}}


@router.get("/admin/applications")
def list_admin_applications(
    status: str = Query("all"),
    q: Optional[str] = Query(None),
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    if normalize_status(status) not in ADMIN_LIST_FILTERS:
        raise HTTPException(status_code=400, detail="Invalid status filter")
    bikes = {b.id: b for b in db.list_bikes()}
    applications = admin_application_list(db.list_applications(), status, q)
    return {"applications": [application_with_bike(a, bikes) for a in applications]}


@router.post("/admin/applications/evaluation")
def save_application_evaluation(
    payload: EvaluationRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    application = save_evaluation(db, payload.application_id, payload.evaluation)
    return {"success": True, "evaluation": application.evaluation}


@router.post("/admin/applications")
def update_application_status(
    payload: ApplicationStatusRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    application = set_application_status(db, payload.application_id, payload.status)
    _log_admin_action(
        db, admin, "Application", f"Set application {application.id} to {application.status}"
    )
    job = enqueue_job(
        db,
        queue,
        JobKind.APPLICATION_STATUS_EMAIL,
        {"applicationId": application.id, "status": application.status},
    )
    return {"success": True, "application": application.as_dict(), "jobId": job.job_id}


@router.post("/admin/assign-bike")
def assign_bike_to_application(
    payload: AssignBikeRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    application, bike = assign_bike(db, payload.application_id, payload.bike_id)
    _log_admin_action(
        db, admin, "Assignment", f"Assigned {bike.label} to application {application.id}"
    )
    job = enqueue_job(
        db,
        queue,
        JobKind.BIKE_ASSIGNED_EMAIL,
        {"applicationId": application.id, "bikeId": bike.id},
    )
    return {
        "success": True,
        "application": application.as_dict(),
        "bike": bike.as_dict(),
        "jobId": job.job_id,
    }


@router.post("/admin/end-rental")
def end_application_rental(
    payload: ApplicationIdRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    store: AnalyticsStore = Depends(get_analytics_store),
):
    rental = end_rental(db, store, payload.application_id)
    _log_admin_action(db, admin, "Return", f"Ended rental for application {payload.application_id}")
    return {"success": True, "rental": rental.as_dict()}


@router.post("/admin/applications/notify")
def notify_application_status(
    payload: NotifyStatusRequest,
    caller: Optional[AuthUser] = Depends(require_admin_or_notify_secret),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    status = normalize_status(payload.status)
    if not payload.application_id.strip() or status not in NOTIFIABLE_STATUSES:
        raise HTTPException(status_code=400, detail="Invalid request")
    application = db.get_application(payload.application_id.strip())
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")
    if not (application.email or "").strip():
        return {"success": True, "queued": False}
    job = enqueue_job(
        db,
        queue,
        JobKind.APPLICATION_STATUS_EMAIL,
        {"applicationId": application.id, "status": status},
    )
    return {"success": True, "queued": True, "jobId": job.job_id}


@router.post("/admin/assign-bike/notify")
def notify_bike_assigned(
    payload: ApplicationIdRequest,
    caller: Optional[AuthUser] = Depends(require_admin_or_notify_secret),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
):
    application = db.get_application(payload.application_id.strip())
    if application is None:
        raise HTTPException(status_code=404, detail="Application not found")
    if not application.bike_id:
        raise HTTPException(status_code=400, detail="Application has no assigned bike")
    if not (application.email or "").strip():
        return {"success": True, "queued": False}
    job = enqueue_job(
        db,
        queue,
        JobKind.BIKE_ASSIGNED_EMAIL,
        {"applicationId": application.id, "bikeId": application.bike_id},
    )
    return {"success": True, "queued": True, "jobId": job.job_id}


@router.get("/admin/stats")
def admin_stats(
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    applications = db.list_applications()
    bikes = db.list_bikes()
    leaderboard = db.list_leaderboard()
    issues_by_category = {c.value: 0 for c in IssueCategory}
    for issue in db.list_issues():
        issues_by_category[issue.category] = issues_by_category.get(issue.category, 0) + 1
    return {
        "totalApplications": len(applications),
        "pendingApplications": sum(1 for a in applications if not a.bike_id),
        "assignedApplications": sum(1 for a in applications if a.bike_id),
        "totalBikes": len(bikes),
        "availableBikes": sum(
            1 for b in bikes if normalize_status(b.status) == BikeStatus.AVAILABLE.value
        ),
        "rentedBikes": sum(
            1 for b in bikes if normalize_status(b.status) == BikeStatus.RENTED.value
        ),
        "sustainability": sustainability_totals(
            (e.distance_km for e in leaderboard), (e.co2_saved_kg for e in leaderboard)
        ),
        "issuesByCategory": issues_by_category,
    }
