"""
Shared enums and small value helpers.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any, Optional


class ApplicationStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    # Legacy records written before "assigned" existed.
    ACTIVE = "active"


OPEN_APPLICATION_STATUSES = frozenset(
    {
        ApplicationStatus.PENDING.value,
        ApplicationStatus.APPROVED.value,
        ApplicationStatus.ACTIVE.value,
        ApplicationStatus.ASSIGNED.value,
    }
)


class ApplicationType(str, enum.Enum):
    STUDENT = "student"
    STAFF = "staff"


class BikeStatus(str, enum.Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"


class IssueStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class IssueCategory(str, enum.Enum):
    TECHNICAL = "technical"
    BIKE_DAMAGE = "bike_damage"
    SAFETY = "safety"
    OTHER = "other"


class IssuePriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class JobStatus(str, enum.Enum):
    WAITING = "WAITING"
    RUNNING = "RUNNING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class JobKind(str, enum.Enum):
    APPLICATION_STATUS_EMAIL = "application_status_email"
    BIKE_ASSIGNED_EMAIL = "bike_assigned_email"
    PASSWORD_RESET_EMAIL = "password_reset_email"
    MAINTENANCE_TRAIN = "maintenance_train"


def normalize_status(value: Any) -> str:
    return str(value or "").strip().lower()


def iso(ts: Optional[float]) -> Optional[str]:
    """Epoch seconds -> ISO-8601 UTC string (None passes through)."""
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, timezone.utc).isoformat()


def parse_timestamp(value: Any) -> Optional[float]:
    """
    Best-effort conversion of ISO strings, datetimes or epoch numbers to
    epoch seconds. Returns None for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    if isinstance(value, (int, float)):
        # Millisecond epochs are common in client payloads.
        return float(value) / 1000.0 if value > 1e11 else float(value)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()
