"""
Application lifecycle rules shared by the HTTP routes.

pending -> approved | rejected -> assigned -> completed

Rule violations raise WorkflowError carrying the HTTP status the API
should answer with.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from bikerental.analytics_db import AnalyticsStore, RentalRecord
from bikerental.db import (
    ApplicationRecord,
    BikeRecord,
    DbClient,
    LeaderboardRecord,
)
from bikerental.storage import StorageClient
from bikerental.types import (
    OPEN_APPLICATION_STATUSES,
    ApplicationStatus,
    ApplicationType,
    BikeStatus,
    normalize_status,
)

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 86400

STUDENT_REQUIRED_FIELDS = (
    "lastName",
    "firstName",
    "srCode",
    "sex",
    "dateOfBirth",
    "phoneNumber",
    "email",
    "houseNo",
    "streetName",
    "barangay",
    "municipality",
    "province",
    "distanceFromCampus",
    "familyIncome",
    "intendedDuration",
)
STUDENT_OPTIONAL_FIELDS = (
    "middleName",
    "collegeProgram",
    "college",
    "program",
    "section",
    "gwaLastSemester",
    "extracurricularActivities",
    "intendedDurationOther",
)
STAFF_REQUIRED_FIELDS = (
    "lastName",
    "firstName",
    "email",
    "department",
    "staffId",
    "employeeType",
    "purpose",
    "startDate",
    "durationDays",
)
STAFF_OPTIONAL_FIELDS = ("middleName", "phoneNumber", "sex", "employmentCertPath")

# form field -> (storage folder, application detail key)
DOCUMENT_UPLOADS = {
    "indigencyFile": ("bike-rental/certificates", "certificatePath"),
    "gwaFile": ("bike-rental/documents/gwa", "gwaDocumentPath"),
    "ecaFile": ("bike-rental/documents/eca", "ecaDocumentPath"),
    "itrFile": ("bike-rental/documents/itr", "itrDocumentPath"),
}

EVALUATION_FIELDS = (
    "eligibilityStatus",
    "eligibilityRemarks",
    "eligibilitySignatureName",
    "eligibilitySignaturePath",
    "rankingScore",
    "rankingRecommended",
    "rankingSignatureName",
    "rankingSignaturePath",
    "healthStatus",
    "healthRemarks",
    "healthSignatureName",
    "healthSignaturePath",
    "approvedSignatureName",
    "approvedSignaturePath",
    "releasedBikePlate",
    "releasedSignatureName",
    "releasedSignaturePath",
)

ADMIN_STATUS_CHOICES = ("approved", "rejected", "pending")
ADMIN_LIST_FILTERS = ("all", "pending", "assigned", "completed")


class WorkflowError(Exception):
    def __init__(self, status_code: int, detail: str):
        super().__init__(detail)
        self.status_code = status_code
        self.detail = detail


@dataclass
class UploadedDocument:
    filename: str
    data: bytes
    content_type: Optional[str] = None


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _missing(fields: Mapping[str, object], required: Iterable[str]) -> list[str]:
    return [name for name in required if _clean(fields.get(name)) is None]


def ensure_no_open_application(db: DbClient, user_id: str) -> None:
    for application in db.list_applications(user_id=user_id):
        if normalize_status(application.status) in OPEN_APPLICATION_STATUSES:
            raise WorkflowError(
                400, "You already have an active or pending rental application."
            )


def safe_filename(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9._-]+", "_", name.strip()) or "document"
    return cleaned.lstrip(".") or "document"


def submit_student_application(
    db: DbClient,
    storage: StorageClient,
    user_id: Optional[str],
    fields: Mapping[str, object],
    documents: Optional[Mapping[str, Optional[UploadedDocument]]] = None,
) -> ApplicationRecord:
    if not _clean(user_id):
        raise WorkflowError(401, "Please log in before submitting an application.")
    ensure_no_open_application(db, user_id)
    missing = _missing(fields, STUDENT_REQUIRED_FIELDS)
    if missing:
        raise WorkflowError(400, f"Missing required fields: {', '.join(missing)}")

    application_id = uuid.uuid4().hex
    details = {
        name: _clean(fields.get(name))
        for name in STUDENT_REQUIRED_FIELDS + STUDENT_OPTIONAL_FIELDS
        if name not in ("firstName", "lastName", "middleName", "email", "college")
    }
    for form_field, (folder, detail_key) in DOCUMENT_UPLOADS.items():
        document = (documents or {}).get(form_field)
        if document is None or not document.data:
            details[detail_key] = None
            continue
        path = f"{folder}/{application_id}/{safe_filename(document.filename)}"
        details[detail_key] = storage.upload_bytes(path, document.data, document.content_type)
        logger.info("Stored %s for application %s at %s", form_field, application_id, path)

    application = ApplicationRecord(
        id=application_id,
        user_id=user_id,
        email=_clean(fields.get("email")),
        first_name=_clean(fields.get("firstName")),
        last_name=_clean(fields.get("lastName")),
        middle_name=_clean(fields.get("middleName")),
        college=_clean(fields.get("college")),
        application_type=ApplicationType.STUDENT.value,
        status=ApplicationStatus.PENDING.value,
        details=details,
    )
    return db.create_application(application)


def submit_staff_application(
    db: DbClient, user_id: Optional[str], fields: Mapping[str, object]
) -> ApplicationRecord:
    if not _clean(user_id):
        raise WorkflowError(401, "Please log in before submitting an application.")
    ensure_no_open_application(db, user_id)
    missing = _missing(fields, STAFF_REQUIRED_FIELDS)
    if missing:
        raise WorkflowError(400, "Please fill in all required fields.")
    duration = parse_duration_days(fields.get("durationDays"))
    if duration is None:
        raise WorkflowError(400, "durationDays must be a positive number of days.")

    details = {
        name: _clean(fields.get(name))
        for name in STAFF_REQUIRED_FIELDS + STAFF_OPTIONAL_FIELDS
        if name not in ("firstName", "lastName", "middleName", "email")
    }
    details["durationDays"] = duration
    application = ApplicationRecord(
        user_id=user_id,
        email=_clean(fields.get("email")),
        first_name=_clean(fields.get("firstName")),
        last_name=_clean(fields.get("lastName")),
        middle_name=_clean(fields.get("middleName")),
        college=_clean(fields.get("department")),
        application_type=ApplicationType.STAFF.value,
        status=ApplicationStatus.PENDING.value,
        details=details,
    )
    return db.create_application(application)


def parse_duration_days(value) -> Optional[int]:
    """Whole days from values like 30, "30" or "30 days"; None otherwise."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        days = int(value)
    else:
        match = re.match(r"^\s*(\d+)\s*(?:days?)?\s*$", str(value), re.IGNORECASE)
        if not match:
            return None
        days = int(match.group(1))
    return days if days > 0 else None


def rental_duration_days(application: ApplicationRecord) -> Optional[int]:
    details = application.details or {}
    if application.application_type == ApplicationType.STAFF.value:
        return parse_duration_days(details.get("durationDays"))
    intended = details.get("intendedDuration")
    if normalize_status(intended) == "other":
        return parse_duration_days(details.get("intendedDurationOther"))
    return parse_duration_days(intended)


def evaluation_complete(application: ApplicationRecord) -> bool:
    evaluation = application.evaluation or {}
    has_eligibility = bool(
        evaluation.get("eligibilityStatus") and evaluation.get("eligibilitySignatureName")
    )
    has_health = bool(
        evaluation.get("healthStatus") and evaluation.get("healthSignatureName")
    )
    has_approved = bool(evaluation.get("approvedSignatureName"))
    if application.application_type == ApplicationType.STAFF.value:
        return has_eligibility and has_health and has_approved
    has_ranking = bool(
        evaluation.get("rankingScore")
        and evaluation.get("rankingRecommended") is not None
        and evaluation.get("rankingSignatureName")
    )
    return has_eligibility and has_ranking and has_health and has_approved


def _get_application(db: DbClient, application_id: str) -> ApplicationRecord:
    application = db.get_application(application_id) if application_id else None
    if application is None:
        raise WorkflowError(404, "Application not found")
    return application


def _get_bike(db: DbClient, bike_id: str) -> BikeRecord:
    bike = db.get_bike(bike_id) if bike_id else None
    if bike is None:
        raise WorkflowError(404, "Bike not found")
    return bike


def save_evaluation(
    db: DbClient, application_id: str, evaluation: Mapping[str, object]
) -> ApplicationRecord:
    application = _get_application(db, application_id)
    merged = dict(application.evaluation or {})
    for key in EVALUATION_FIELDS:
        if key in evaluation:
            merged[key] = evaluation[key]
    return db.update_application(application.id, evaluation=merged)


def set_application_status(
    db: DbClient, application_id: str, status: str
) -> ApplicationRecord:
    status = normalize_status(status)
    if not application_id or status not in ADMIN_STATUS_CHOICES:
        raise WorkflowError(400, "Invalid request")
    application = _get_application(db, application_id)
    current = normalize_status(application.status)
    if current in (ApplicationStatus.ASSIGNED.value, ApplicationStatus.ACTIVE.value,
                   ApplicationStatus.COMPLETED.value):
        raise WorkflowError(409, f"Cannot change status of a {current} application")
    if status == ApplicationStatus.APPROVED.value and not evaluation_complete(application):
        raise WorkflowError(400, "Complete the evaluation before approving this application")
    logger.info("Application %s: %s -> %s", application.id, current, status)
    return db.update_application(application.id, status=status)


def assign_bike(
    db: DbClient, application_id: str, bike_id: str, now: Optional[float] = None
) -> tuple[ApplicationRecord, BikeRecord]:
    application = _get_application(db, application_id)
    bike = _get_bike(db, bike_id)
    if normalize_status(application.status) != ApplicationStatus.APPROVED.value:
        raise WorkflowError(409, "Only approved applications can be assigned a bike")
    if normalize_status(bike.status) != BikeStatus.AVAILABLE.value:
        raise WorkflowError(409, "Bike is not available")

    now = now if now is not None else time.time()
    days = rental_duration_days(application)
    application = db.update_application(
        application.id,
        status=ApplicationStatus.ASSIGNED.value,
        bike_id=bike.id,
        assigned_at=now,
        due_date=now + days * SECONDS_PER_DAY if days else None,
    )
    bike = db.update_bike(bike.id, status=BikeStatus.RENTED.value)
    logger.info("Assigned bike %s to application %s", bike.id, application.id)
    return application, bike


def end_rental(
    db: DbClient,
    store: AnalyticsStore,
    application_id: str,
    now: Optional[float] = None,
) -> RentalRecord:
    """Return the bike, complete the application and log the rental."""
    application = _get_application(db, application_id)
    status = normalize_status(application.status)
    if status not in (ApplicationStatus.ASSIGNED.value, ApplicationStatus.ACTIVE.value) or not application.bike_id:
        raise WorkflowError(409, "Application has no active rental")

    now = now if now is not None else time.time()
    bike = db.get_bike(application.bike_id)
    if bike is not None:
        db.update_bike(bike.id, status=BikeStatus.AVAILABLE.value)
    db.update_application(
        application.id, status=ApplicationStatus.COMPLETED.value, completed_at=now
    )
    rental = RentalRecord(
        user_id=application.user_id,
        email=application.email,
        application_id=application.id,
        bike_id=application.bike_id,
        bike_name=bike.label if bike else None,
        college=application.college,
        start_date=application.assigned_at or application.created_at,
        end_date=now,
        status="completed",
        created_at=now,
    )
    store.add_rental(rental)
    logger.info("Ended rental of bike %s for application %s", application.bike_id, application.id)
    return rental


ASSIGNMENT_PRIORITY = {
    ApplicationStatus.ASSIGNED.value: 3,
    ApplicationStatus.ACTIVE.value: 2,
    ApplicationStatus.APPROVED.value: 1,
}


def current_assignment(
    applications: Iterable[ApplicationRecord],
) -> Optional[ApplicationRecord]:
    """
    The application whose bike the rider holds now: assigned beats active
    beats approved, then the most recently assigned (or created) wins.
    """
    candidates = [
        a
        for a in applications
        if a.bike_id and normalize_status(a.status) in ASSIGNMENT_PRIORITY
    ]
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda a: (
            ASSIGNMENT_PRIORITY[normalize_status(a.status)],
            a.assigned_at or a.created_at or 0.0,
        ),
    )


def latest_rented_application(
    applications: Iterable[ApplicationRecord],
) -> Optional[ApplicationRecord]:
    candidates = [
        a
        for a in applications
        if a.bike_id and normalize_status(a.status) in ASSIGNMENT_PRIORITY
    ]
    return max(candidates, key=lambda a: a.created_at, default=None)


def _admin_rank(application: ApplicationRecord) -> int:
    status = normalize_status(application.status)
    if status == ApplicationStatus.REJECTED.value:
        return 3
    if status == ApplicationStatus.COMPLETED.value:
        return 2
    if status == ApplicationStatus.ASSIGNED.value or application.bike_id:
        return 1
    return 0


def admin_application_list(
    applications: Iterable[ApplicationRecord],
    status_filter: str = "all",
    q: Optional[str] = None,
) -> list[ApplicationRecord]:
    """Filter then order: open first, then assigned, completed, rejected."""
    needle = (q or "").strip().lower()
    status_filter = normalize_status(status_filter) or "all"
    result = []
    for app in applications:
        if needle:
            full_name = re.sub(r"\s+", " ", app.full_name).lower()
            if needle not in (app.email or "").lower() and needle not in full_name:
                continue
        status = normalize_status(app.status)
        if status_filter == "pending" and status != ApplicationStatus.PENDING.value:
            continue
        if status_filter == "assigned" and not (
            status == ApplicationStatus.ASSIGNED.value or app.bike_id
        ):
            continue
        if status_filter == "completed" and status != ApplicationStatus.COMPLETED.value:
            continue
        result.append(app)
    result.sort(key=lambda a: -(a.created_at or 0.0))
    result.sort(key=_admin_rank)
    return result


def bike_device_id(bike: Optional[BikeRecord]) -> Optional[str]:
    return bike.device_id if bike and bike.device_id else None


def ranked_leaderboard(db: DbClient, limit: int = 10) -> list[LeaderboardRecord]:
    """
    Every non-admin user gets a zero entry the first time the board is read;
    ordering is distance, then CO2 saved, then newest entry.
    """
    limit = max(1, min(100, limit))
    existing = db.list_leaderboard()
    known_users = {e.user_id for e in existing if e.user_id}
    for user in db.list_users():
        if user.role.lower() == "admin" or user.id in known_users:
            continue
        existing.append(
            db.create_leaderboard_entry(
                LeaderboardRecord(user_id=user.id, name=user.name or user.email)
            )
        )
    existing.sort(key=lambda e: -(e.created_at or 0.0))
    existing.sort(key=lambda e: (-(e.distance_km or 0.0), -(e.co2_saved_kg or 0.0)))
    return existing[:limit]
