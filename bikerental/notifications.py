"""
Email content for applicants and helpers that hand email work to the
background worker.
"""

from __future__ import annotations

import logging
from typing import Optional

from bikerental.db import ApplicationRecord, BikeRecord, DbClient, JobRecord
from bikerental.mailer import OutgoingEmail
from bikerental.queue import JobQueue
from bikerental.types import JobKind

logger = logging.getLogger(__name__)

NOTIFIABLE_STATUSES = ("approved", "rejected", "pending")


def enqueue_job(db: DbClient, queue: JobQueue, kind: JobKind, payload: dict) -> JobRecord:
    job = db.create_job(kind.value, payload)
    queue.enqueue(job.job_id)
    logger.info("Queued %s job %s", kind.value, job.job_id)
    return job


def application_status_email(
    application: ApplicationRecord, status: str
) -> Optional[OutgoingEmail]:
    recipient = (application.email or "").strip()
    if not recipient:
        return None
    if status == "approved":
        subject = "Your Bike Rental Application Has Been Approved"
        text = (
            "Your bike rental application has been approved. "
            "We will contact you with next steps."
        )
        html = (
            "<p>Your bike rental application has been <strong>approved</strong>.</p>"
            "<p>We will contact you with next steps.</p>"
        )
    elif status == "rejected":
        subject = "Your Bike Rental Application Status"
        text = "We're sorry to inform you that your application was rejected."
        html = (
            "<p>We're sorry to inform you that your application was "
            "<strong>rejected</strong>.</p>"
        )
    else:
        subject = "Your Bike Rental Application Status Updated"
        text = f"Your application status is now: {status}."
        html = f"<p>Your application status is now: <strong>{status}</strong>.</p>"
    return OutgoingEmail(to=recipient, subject=subject, text=text, html=html)


def bike_assigned_email(
    application: ApplicationRecord, bike: BikeRecord
) -> Optional[OutgoingEmail]:
    recipient = (application.email or "").strip()
    if not recipient:
        return None
    label = bike.name or bike.plate_number or "your assigned bike"
    return OutgoingEmail(
        to=recipient,
        subject="Your Bike Rental Application Has Been Accepted",
        text=(
            "Good news! Your bike rental application has been accepted. "
            f"The admin has assigned you bike {label}."
        ),
        html=(
            "<p>Good news! Your bike rental application has been "
            "<strong>accepted</strong>.</p>"
            f"<p>The admin has assigned you bike <strong>{label}</strong>.</p>"
            "<p>Please check your dashboard for next steps and pickup instructions.</p>"
        ),
    )


def reset_link(frontend_base_url: str, token: str) -> str:
    return f"{frontend_base_url.rstrip('/')}/reset-password?token={token}"


def password_reset_email(recipient: str, link: str) -> OutgoingEmail:
    return OutgoingEmail(
        to=recipient,
        subject="Password Reset",
        text=f"Reset your password: {link}",
        html=(
            "<p>Click the link to reset your password:</p>"
            f'<p><a href="{link}">{link}</a></p>'
        ),
    )
