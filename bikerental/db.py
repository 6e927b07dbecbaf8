"""
Primary document store: users, applications, bikes, reported issues,
leaderboard, activity logs and background jobs.

Ships a SQLAlchemy implementation (Postgres in production, SQLite in tests)
and an in-memory implementation for development.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Iterable, Optional, Protocol

from sqlalchemy import JSON, Column, Float, String, Text, create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from bikerental.types import JobStatus, iso


def _new_id() -> str:
    return uuid.uuid4().hex


class DbClient(Protocol):
    """Interface for primary database access."""

    def create_user(self, user: "UserRecord") -> "UserRecord":
        ...

    def get_user(self, user_id: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_email(self, email: str) -> Optional["UserRecord"]:
        ...

    def get_user_by_reset_token(self, token: str) -> Optional["UserRecord"]:
        ...

    def list_users(self) -> list["UserRecord"]:
        ...

    def update_user(self, user_id: str, **changes: Any) -> Optional["UserRecord"]:
        ...

    def create_application(
        self, application: "ApplicationRecord"
    ) -> "ApplicationRecord":
        ...

    def get_application(self, application_id: str) -> Optional["ApplicationRecord"]:
        ...

    def list_applications(
        self,
        *,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        bike_id: Optional[str] = None,
    ) -> list["ApplicationRecord"]:
        ...

    def update_application(
        self, application_id: str, **changes: Any
    ) -> Optional["ApplicationRecord"]:
        ...

    def create_bike(self, bike: "BikeRecord") -> "BikeRecord":
        ...

    def get_bike(self, bike_id: str) -> Optional["BikeRecord"]:
        ...

    def list_bikes(self) -> list["BikeRecord"]:
        ...

    def update_bike(self, bike_id: str, **changes: Any) -> Optional["BikeRecord"]:
        ...

    def create_issue(self, issue: "IssueRecord") -> "IssueRecord":
        ...

    def get_issue(self, issue_id: str) -> Optional["IssueRecord"]:
        ...

    def list_issues(self) -> list["IssueRecord"]:
        ...

    def update_issue(self, issue_id: str, **changes: Any) -> Optional["IssueRecord"]:
        ...

    def create_leaderboard_entry(
        self, entry: "LeaderboardRecord"
    ) -> "LeaderboardRecord":
        ...

    def get_leaderboard_entry(self, entry_id: str) -> Optional["LeaderboardRecord"]:
        ...

    def list_leaderboard(self) -> list["LeaderboardRecord"]:
        ...

    def update_leaderboard_entry(
        self, entry_id: str, **changes: Any
    ) -> Optional["LeaderboardRecord"]:
        ...

    def add_activity_log(self, log: "ActivityLogRecord") -> None:
        ...

    def create_job(self, kind: str, payload: dict) -> "JobRecord":
        ...

    def get_job(self, job_id: str) -> Optional["JobRecord"]:
        ...

    def claim_job(self, job_id: str) -> Optional["JobRecord"]:
        ...

    def claim_next_waiting_job(self) -> Optional["JobRecord"]:
        ...

    def update_job_status(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> None:
        ...

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        ...


@dataclass
class UserRecord:
    name: str
    email: str
    password_hash: str
    role: str
    id: str = field(default_factory=_new_id)
    password_reset_token: Optional[str] = None
    password_reset_expiry: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "createdAt": iso(self.created_at),
        }


@dataclass
class ApplicationRecord:
    user_id: str
    email: str
    first_name: str
    last_name: str
    application_type: str = "student"
    status: str = "pending"
    id: str = field(default_factory=_new_id)
    middle_name: Optional[str] = None
    college: Optional[str] = None
    bike_id: Optional[str] = None
    details: dict = field(default_factory=dict)
    evaluation: Optional[dict] = None
    due_date: Optional[float] = None
    assigned_at: Optional[float] = None
    completed_at: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.middle_name or "", self.last_name]
        return " ".join(p.strip() for p in parts if p and p.strip())

    def as_dict(self) -> dict:
        payload = dict(self.details or {})
        payload.update(
            {
                "id": self.id,
                "userId": self.user_id,
                "email": self.email,
                "firstName": self.first_name,
                "middleName": self.middle_name,
                "lastName": self.last_name,
                "college": self.college,
                "applicationType": self.application_type,
                "status": self.status,
                "bikeId": self.bike_id,
                "evaluation": self.evaluation,
                "dueDate": iso(self.due_date),
                "assignedAt": iso(self.assigned_at),
                "completedAt": iso(self.completed_at),
                "createdAt": iso(self.created_at),
                "updatedAt": iso(self.updated_at),
            }
        )
        return payload


@dataclass
class BikeRecord:
    name: str
    id: str = field(default_factory=_new_id)
    plate_number: Optional[str] = None
    device_id: Optional[str] = None
    status: str = "available"
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    @property
    def label(self) -> str:
        return self.name or self.plate_number or self.id

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "plateNumber": self.plate_number,
            "deviceId": self.device_id,
            "status": self.status,
            "createdAt": iso(self.created_at),
        }


@dataclass
class IssueRecord:
    subject: str
    message: str
    reported_by: str
    category: str = "other"
    priority: str = "medium"
    status: str = "open"
    id: str = field(default_factory=_new_id)
    bike_id: Optional[str] = None
    image_path: Optional[str] = None
    assigned_to: Optional[str] = None
    admin_notes: Optional[str] = None
    resolved_at: Optional[float] = None
    reported_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "subject": self.subject,
            "message": self.message,
            "category": self.category,
            "priority": self.priority,
            "status": self.status,
            "bikeId": self.bike_id,
            "imagePath": self.image_path,
            "reportedBy": self.reported_by,
            "reportedAt": iso(self.reported_at),
            "assignedTo": self.assigned_to,
            "resolvedAt": iso(self.resolved_at),
            "adminNotes": self.admin_notes,
        }


@dataclass
class LeaderboardRecord:
    name: str
    distance_km: float = 0.0
    co2_saved_kg: float = 0.0
    user_id: Optional[str] = None
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "userId": self.user_id,
            "name": self.name,
            "distanceKm": self.distance_km,
            "co2SavedKg": self.co2_saved_kg,
            "createdAt": iso(self.created_at),
            "updatedAt": iso(self.updated_at),
        }


@dataclass
class ActivityLogRecord:
    type: str
    admin_email: str
    description: str
    admin_name: str = ""
    id: str = field(default_factory=_new_id)
    created_at: float = field(default_factory=lambda: time.time())


@dataclass
class JobRecord:
    job_id: str
    kind: str
    payload: dict
    status: JobStatus
    error: Optional[str] = None
    locked_at: Optional[float] = None
    created_at: float = field(default_factory=lambda: time.time())
    updated_at: float = field(default_factory=lambda: time.time())

    def as_dict(self) -> dict:
        return {
            "job_id": self.job_id,
            "kind": self.kind,
            "status": self.status.name,
            "error": self.error,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


def _touch(record: Any, changes: Dict[str, Any]) -> None:
    for key, value in changes.items():
        setattr(record, key, value)
    if hasattr(record, "updated_at"):
        record.updated_at = time.time()


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.users: Dict[str, UserRecord] = {}
        self.applications: Dict[str, ApplicationRecord] = {}
        self.bikes: Dict[str, BikeRecord] = {}
        self.issues: Dict[str, IssueRecord] = {}
        self.leaderboard: Dict[str, LeaderboardRecord] = {}
        self.activity_logs: list[ActivityLogRecord] = []
        self.jobs: Dict[str, JobRecord] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.users.clear()
        self.applications.clear()
        self.bikes.clear()
        self.issues.clear()
        self.leaderboard.clear()
        self.activity_logs.clear()
        self.jobs.clear()

    # Users

    def create_user(self, user: UserRecord) -> UserRecord:
        self.users[user.id] = user
        return user

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if user.email == email:
                return user
        return None

    def get_user_by_reset_token(self, token: str) -> Optional[UserRecord]:
        for user in self.users.values():
            if token and user.password_reset_token == token:
                return user
        return None

    def list_users(self) -> list[UserRecord]:
        return sorted(self.users.values(), key=lambda u: u.created_at)

    def update_user(self, user_id: str, **changes: Any) -> Optional[UserRecord]:
        user = self.users.get(user_id)
        if user:
            _touch(user, changes)
        return user

    # Applications

    def create_application(self, application: ApplicationRecord) -> ApplicationRecord:
        self.applications[application.id] = application
        return application

    def get_application(self, application_id: str) -> Optional[ApplicationRecord]:
        return self.applications.get(application_id)

    def list_applications(
        self,
        *,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        bike_id: Optional[str] = None,
    ) -> list[ApplicationRecord]:
        items = [
            app
            for app in self.applications.values()
            if (user_id is None or app.user_id == user_id)
            and (email is None or app.email == email)
            and (bike_id is None or app.bike_id == bike_id)
        ]
        return sorted(items, key=lambda a: a.created_at, reverse=True)

    def update_application(
        self, application_id: str, **changes: Any
    ) -> Optional[ApplicationRecord]:
        application = self.applications.get(application_id)
        if application:
            _touch(application, changes)
        return application

    # Bikes

    def create_bike(self, bike: BikeRecord) -> BikeRecord:
        self.bikes[bike.id] = bike
        return bike

    def get_bike(self, bike_id: str) -> Optional[BikeRecord]:
        return self.bikes.get(bike_id)

    def list_bikes(self) -> list[BikeRecord]:
        return sorted(self.bikes.values(), key=lambda b: b.name)

    def update_bike(self, bike_id: str, **changes: Any) -> Optional[BikeRecord]:
        bike = self.bikes.get(bike_id)
        if bike:
            _touch(bike, changes)
        return bike

    # Reported issues

    def create_issue(self, issue: IssueRecord) -> IssueRecord:
        self.issues[issue.id] = issue
        return issue

    def get_issue(self, issue_id: str) -> Optional[IssueRecord]:
        return self.issues.get(issue_id)

    def list_issues(self) -> list[IssueRecord]:
        return sorted(self.issues.values(), key=lambda i: i.reported_at, reverse=True)

    def update_issue(self, issue_id: str, **changes: Any) -> Optional[IssueRecord]:
        issue = self.issues.get(issue_id)
        if issue:
            _touch(issue, changes)
        return issue

    # Leaderboard

    def create_leaderboard_entry(self, entry: LeaderboardRecord) -> LeaderboardRecord:
        self.leaderboard[entry.id] = entry
        return entry

    def get_leaderboard_entry(self, entry_id: str) -> Optional[LeaderboardRecord]:
        return self.leaderboard.get(entry_id)

    def list_leaderboard(self) -> list[LeaderboardRecord]:
        return list(self.leaderboard.values())

    def update_leaderboard_entry(
        self, entry_id: str, **changes: Any
    ) -> Optional[LeaderboardRecord]:
        entry = self.leaderboard.get(entry_id)
        if entry:
            _touch(entry, changes)
        return entry

    def add_activity_log(self, log: ActivityLogRecord) -> None:
        self.activity_logs.append(log)

    # Jobs

    def create_job(self, kind: str, payload: dict) -> JobRecord:
        record = JobRecord(
            job_id=_new_id(),
            kind=kind,
            payload=dict(payload),
            status=JobStatus.WAITING,
        )
        self.jobs[record.job_id] = record
        return record

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        return self.jobs.get(job_id)

    def claim_job(self, job_id: str) -> Optional[JobRecord]:
        job = self.jobs.get(job_id)
        if not job or job.status != JobStatus.WAITING:
            return None
        job.status = JobStatus.RUNNING
        job.locked_at = time.time()
        job.updated_at = job.locked_at
        return job

    def claim_next_waiting_job(self) -> Optional[JobRecord]:
        waiting = sorted(
            (j for j in self.jobs.values() if j.status == JobStatus.WAITING),
            key=lambda j: j.created_at,
        )
        if not waiting:
            return None
        return self.claim_job(waiting[0].job_id)

    def update_job_status(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> None:
        job = self.jobs.get(job_id)
        if job:
            job.status = status
            job.error = error
            job.updated_at = time.time()

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        now = time.time()
        requeued = 0
        for job in self.jobs.values():
            if (
                job.status == JobStatus.RUNNING
                and job.locked_at
                and now - job.locked_at > lock_timeout_seconds
            ):
                job.status = JobStatus.WAITING
                job.locked_at = None
                job.updated_at = now
                requeued += 1
        return requeued


def _to_record(row: Any, record_cls: type) -> Any:
    return record_cls(**{f.name: getattr(row, f.name) for f in fields(record_cls)})


def _to_row(record: Any, row_cls: type) -> Any:
    return row_cls(**{f.name: getattr(record, f.name) for f in fields(record)})


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        Base.metadata.create_all(self.engine)

    def _add(self, record: Any, row_cls: type) -> Any:
        with self.Session() as session:
            session.add(_to_row(record, row_cls))
            session.commit()
        return record

    def _get(self, row_cls: type, record_cls: type, key: str) -> Any:
        with self.Session() as session:
            row = session.get(row_cls, key)
            return _to_record(row, record_cls) if row else None

    def _first(self, stmt, record_cls: type) -> Any:
        with self.Session() as session:
            row = session.execute(stmt.limit(1)).scalar_one_or_none()
            return _to_record(row, record_cls) if row else None

    def _all(self, stmt, record_cls: type) -> list:
        with self.Session() as session:
            rows: Iterable = session.execute(stmt).scalars().all()
            return [_to_record(row, record_cls) for row in rows]

    def _update(
        self, row_cls: type, record_cls: type, key: str, changes: Dict[str, Any]
    ) -> Any:
        with self.Session() as session:
            row = session.get(row_cls, key)
            if not row:
                return None
            for name, value in changes.items():
                setattr(row, name, value)
            if hasattr(row, "updated_at"):
                row.updated_at = time.time()
            session.commit()
            session.refresh(row)
            return _to_record(row, record_cls)

    # Users

    def create_user(self, user: UserRecord) -> UserRecord:
        return self._add(user, UserRow)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self._get(UserRow, UserRecord, user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        return self._first(select(UserRow).where(UserRow.email == email), UserRecord)

    def get_user_by_reset_token(self, token: str) -> Optional[UserRecord]:
        if not token:
            return None
        stmt = select(UserRow).where(UserRow.password_reset_token == token)
        return self._first(stmt, UserRecord)

    def list_users(self) -> list[UserRecord]:
        return self._all(select(UserRow).order_by(UserRow.created_at.asc()), UserRecord)

    def update_user(self, user_id: str, **changes: Any) -> Optional[UserRecord]:
        return self._update(UserRow, UserRecord, user_id, changes)

    # Applications

    def create_application(self, application: ApplicationRecord) -> ApplicationRecord:
        return self._add(application, ApplicationRow)

    def get_application(self, application_id: str) -> Optional[ApplicationRecord]:
        return self._get(ApplicationRow, ApplicationRecord, application_id)

    def list_applications(
        self,
        *,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        bike_id: Optional[str] = None,
    ) -> list[ApplicationRecord]:
        stmt = select(ApplicationRow)
        if user_id is not None:
            stmt = stmt.where(ApplicationRow.user_id == user_id)
        if email is not None:
            stmt = stmt.where(ApplicationRow.email == email)
        if bike_id is not None:
            stmt = stmt.where(ApplicationRow.bike_id == bike_id)
        stmt = stmt.order_by(ApplicationRow.created_at.desc())
        return self._all(stmt, ApplicationRecord)

    def update_application(
        self, application_id: str, **changes: Any
    ) -> Optional[ApplicationRecord]:
        return self._update(ApplicationRow, ApplicationRecord, application_id, changes)

    # Bikes

    def create_bike(self, bike: BikeRecord) -> BikeRecord:
        return self._add(bike, BikeRow)

    def get_bike(self, bike_id: str) -> Optional[BikeRecord]:
        return self._get(BikeRow, BikeRecord, bike_id)

    def list_bikes(self) -> list[BikeRecord]:
        return self._all(select(BikeRow).order_by(BikeRow.name.asc()), BikeRecord)

    def update_bike(self, bike_id: str, **changes: Any) -> Optional[BikeRecord]:
        return self._update(BikeRow, BikeRecord, bike_id, changes)

    # Reported issues

    def create_issue(self, issue: IssueRecord) -> IssueRecord:
        return self._add(issue, IssueRow)

    def get_issue(self, issue_id: str) -> Optional[IssueRecord]:
        return self._get(IssueRow, IssueRecord, issue_id)

    def list_issues(self) -> list[IssueRecord]:
        stmt = select(IssueRow).order_by(IssueRow.reported_at.desc())
        return self._all(stmt, IssueRecord)

    def update_issue(self, issue_id: str, **changes: Any) -> Optional[IssueRecord]:
        return self._update(IssueRow, IssueRecord, issue_id, changes)

    # Leaderboard

    def create_leaderboard_entry(self, entry: LeaderboardRecord) -> LeaderboardRecord:
        return self._add(entry, LeaderboardRow)

    def get_leaderboard_entry(self, entry_id: str) -> Optional[LeaderboardRecord]:
        return self._get(LeaderboardRow, LeaderboardRecord, entry_id)

    def list_leaderboard(self) -> list[LeaderboardRecord]:
        return self._all(select(LeaderboardRow), LeaderboardRecord)

    def update_leaderboard_entry(
        self, entry_id: str, **changes: Any
    ) -> Optional[LeaderboardRecord]:
        return self._update(LeaderboardRow, LeaderboardRecord, entry_id, changes)

    def add_activity_log(self, log: ActivityLogRecord) -> None:
        self._add(log, ActivityLogRow)

    # Jobs

    def _to_job_record(self, job: "JobRow") -> JobRecord:
        return JobRecord(
            job_id=job.job_id,
            kind=job.kind,
            payload=job.payload or {},
            status=JobStatus(job.status),
            error=job.error,
            locked_at=job.locked_at,
            created_at=job.created_at,
            updated_at=job.updated_at,
        )

    def create_job(self, kind: str, payload: dict) -> JobRecord:
        now = time.time()
        with self.Session() as session:
            job = JobRow(
                job_id=_new_id(),
                kind=kind,
                payload=dict(payload),
                status=JobStatus.WAITING.value,
                created_at=now,
                updated_at=now,
            )
            session.add(job)
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self.Session() as session:
            job = session.get(JobRow, job_id)
            if not job:
                return None
            return self._to_job_record(job)

    def claim_job(self, job_id: str) -> Optional[JobRecord]:
        now = time.time()
        with self.Session() as session:
            stmt = (
                select(JobRow)
                .where(
                    JobRow.job_id == job_id,
                    JobRow.status == JobStatus.WAITING.value,
                )
                .with_for_update(skip_locked=True)
            )
            job = session.execute(stmt).scalar_one_or_none()
            if not job:
                return None
            job.status = JobStatus.RUNNING.value
            job.locked_at = now
            job.updated_at = now
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def claim_next_waiting_job(self) -> Optional[JobRecord]:
        now = time.time()
        with self.Session() as session:
            stmt = (
                select(JobRow)
                .where(JobRow.status == JobStatus.WAITING.value)
                .order_by(JobRow.created_at.asc())
                .limit(1)
                .with_for_update(skip_locked=True)
            )
            job = session.execute(stmt).scalar_one_or_none()
            if not job:
                return None
            job.status = JobStatus.RUNNING.value
            job.locked_at = now
            job.updated_at = now
            session.commit()
            session.refresh(job)
            return self._to_job_record(job)

    def update_job_status(
        self, job_id: str, status: JobStatus, error: Optional[str] = None
    ) -> None:
        with self.Session() as session:
            job = session.get(JobRow, job_id)
            if not job:
                return
            job.status = status.value
            job.error = error
            job.updated_at = time.time()
            session.commit()

    def requeue_stale_locks(self, lock_timeout_seconds: float = 600) -> int:
        cutoff = time.time() - lock_timeout_seconds
        with self.Session() as session:
            updated = (
                session.query(JobRow)
                .filter(
                    JobRow.status == JobStatus.RUNNING.value,
                    JobRow.locked_at != None,  # noqa: E711
                    JobRow.locked_at < cutoff,
                )
                .update(
                    {
                        JobRow.status: JobStatus.WAITING.value,
                        JobRow.locked_at: None,
                        JobRow.updated_at: time.time(),
                    },
                    synchronize_session=False,
                )
            )
            session.commit()
            return updated or 0


Base = declarative_base()


class UserRow(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=False, unique=True, index=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False)
    password_reset_token = Column(String, nullable=True, index=True)
    password_reset_expiry = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)


class ApplicationRow(Base):
    __tablename__ = "applications"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=False, index=True)
    email = Column(String, nullable=False, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    middle_name = Column(String, nullable=True)
    college = Column(String, nullable=True)
    application_type = Column(String, nullable=False, default="student")
    status = Column(String, nullable=False, index=True)
    bike_id = Column(String, nullable=True, index=True)
    details = Column(JSON, nullable=False, default=dict)
    evaluation = Column(JSON, nullable=True)
    due_date = Column(Float, nullable=True)
    assigned_at = Column(Float, nullable=True)
    completed_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class BikeRow(Base):
    __tablename__ = "bikes"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, index=True)
    plate_number = Column(String, nullable=True)
    device_id = Column(String, nullable=True, index=True)
    status = Column(String, nullable=False, default="available")
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class IssueRow(Base):
    __tablename__ = "reported_issues"

    id = Column(String, primary_key=True)
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    category = Column(String, nullable=False)
    priority = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    bike_id = Column(String, nullable=True, index=True)
    image_path = Column(String, nullable=True)
    reported_by = Column(String, nullable=False)
    reported_at = Column(Float, nullable=False)
    assigned_to = Column(String, nullable=True)
    admin_notes = Column(Text, nullable=True)
    resolved_at = Column(Float, nullable=True)


class LeaderboardRow(Base):
    __tablename__ = "leaderboard"

    id = Column(String, primary_key=True)
    user_id = Column(String, nullable=True, index=True)
    name = Column(String, nullable=False)
    distance_km = Column(Float, nullable=False, default=0.0)
    co2_saved_kg = Column(Float, nullable=False, default=0.0)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)


class ActivityLogRow(Base):
    __tablename__ = "activity_logs"

    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    admin_name = Column(String, nullable=False, default="")
    admin_email = Column(String, nullable=False)
    description = Column(String, nullable=False)
    created_at = Column(Float, nullable=False)


class JobRow(Base):
    __tablename__ = "jobs"

    job_id = Column(String, primary_key=True)
    kind = Column(String, nullable=False, index=True)
    payload = Column(JSON, nullable=False, default=dict)
    status = Column(String, nullable=False, index=True)
    error = Column(Text, nullable=True)
    locked_at = Column(Float, nullable=True)
    created_at = Column(Float, nullable=False)
    updated_at = Column(Float, nullable=False)
