"""
Worker loop for queued background jobs: outgoing emails and maintenance
model training requests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from bikerental.analytics_db import AnalyticsStore
from bikerental.config import Settings, get_settings
from bikerental.db import DbClient, JobRecord
from bikerental.dependencies import (
    get_analytics_store,
    get_db_client,
    get_mailer,
    get_queue_client,
)
from bikerental.mailer import Mailer
from bikerental.maintenance import apply_training_result, request_training
from bikerental.notifications import (
    application_status_email,
    bike_assigned_email,
    password_reset_email,
    reset_link,
)
from bikerental.queue import JobQueue
from bikerental.types import JobKind, JobStatus

logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = 900


@dataclass
class JobContext:
    db: DbClient
    mailer: Mailer
    store: AnalyticsStore
    settings: Settings


def _send_application_status(job: JobRecord, ctx: JobContext) -> None:
    application = ctx.db.get_application(job.payload.get("applicationId", ""))
    if application is None:
        raise LookupError(f"Application {job.payload.get('applicationId')} not found")
    email = application_status_email(application, job.payload.get("status") or application.status)
    if email is None:
        logger.info("[%s] Application %s has no email; nothing to send", job.job_id, application.id)
        return
    ctx.mailer.send(email)


def _send_bike_assigned(job: JobRecord, ctx: JobContext) -> None:
    application = ctx.db.get_application(job.payload.get("applicationId", ""))
    if application is None:
        raise LookupError(f"Application {job.payload.get('applicationId')} not found")
    bike = ctx.db.get_bike(job.payload.get("bikeId") or application.bike_id or "")
    if bike is None:
        raise LookupError(f"Bike {job.payload.get('bikeId')} not found")
    email = bike_assigned_email(application, bike)
    if email is None:
        logger.info("[%s] Application %s has no email; nothing to send", job.job_id, application.id)
        return
    ctx.mailer.send(email)


def _send_password_reset(job: JobRecord, ctx: JobContext) -> None:
    link = reset_link(ctx.settings.frontend_base_url, job.payload["token"])
    ctx.mailer.send(password_reset_email(job.payload["email"], link))


def _train_maintenance_model(job: JobRecord, ctx: JobContext) -> None:
    if not ctx.settings.maintenance_service_url:
        raise RuntimeError("MAINTENANCE_SERVICE_URL is not configured")
    result = request_training(ctx.settings.maintenance_service_url)
    stored = apply_training_result(ctx.store, result)
    logger.info("[%s] Stored training output: %s", job.job_id, stored)


HANDLERS: dict[str, Callable[[JobRecord, JobContext], None]] = {
    JobKind.APPLICATION_STATUS_EMAIL.value: _send_application_status,
    JobKind.BIKE_ASSIGNED_EMAIL.value: _send_bike_assigned,
    JobKind.PASSWORD_RESET_EMAIL.value: _send_password_reset,
    JobKind.MAINTENANCE_TRAIN.value: _train_maintenance_model,
}


def process_job(job: JobRecord, ctx: JobContext) -> None:
    """
    Run one claimed job and record the outcome on the job row. Failures are
    logged and stored as the job's error; they do not stop the worker.
    """
    handler = HANDLERS.get(job.kind)
    if handler is None:
        logger.warning("[%s] Unknown job kind %s", job.job_id, job.kind)
        ctx.db.update_job_status(job.job_id, JobStatus.ERROR, f"Unknown job kind: {job.kind}")
        return
    try:
        handler(job, ctx)
    except Exception as exc:
        logger.exception("[%s] %s failed", job.job_id, job.kind)
        ctx.db.update_job_status(job.job_id, JobStatus.ERROR, str(exc))
        return
    ctx.db.update_job_status(job.job_id, JobStatus.SUCCESS)
    logger.info("[%s] %s done", job.job_id, job.kind)


def process_next(
    *,
    db: Optional[DbClient] = None,
    queue: Optional[JobQueue] = None,
    mailer: Optional[Mailer] = None,
    store: Optional[AnalyticsStore] = None,
    settings: Optional[Settings] = None,
    block: bool = True,
    timeout: Optional[int] = None,
) -> bool:
    """
    Fetch and process one job from the queue (or a WAITING job that was
    never queued). Returns True if a job was processed.
    """
    db = db or get_db_client()
    queue = queue or get_queue_client()
    ctx = JobContext(
        db=db,
        mailer=mailer or get_mailer(),
        store=store or get_analytics_store(),
        settings=settings or get_settings(),
    )

    job_id = queue.dequeue(block=block, timeout=timeout)
    if job_id:
        if db.get_job(job_id) is None:
            logger.warning("Received job_id %s from queue but no DB record found", job_id)
            return False
        # Claim the job so other workers skip it.
        job = db.claim_job(job_id)
        if job is None:
            logger.info("Job %s already claimed elsewhere", job_id)
            return False
    else:
        job = db.claim_next_waiting_job()
        if not job:
            return False

    process_job(job, ctx)
    return True


def run_loop(poll_interval_seconds: float = 2.0) -> None:
    """
    Blocking loop over the queue. Intended to be run under systemd/supervisor.
    """
    db = get_db_client()
    queue = get_queue_client()
    while True:
        try:
            db.requeue_stale_locks(lock_timeout_seconds=LOCK_TIMEOUT_SECONDS)
        except Exception:
            logger.exception("Failed to requeue stale locks")
        processed = process_next(
            db=db, queue=queue, block=True, timeout=int(poll_interval_seconds)
        )
        if not processed:
            time.sleep(poll_interval_seconds)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_loop()
