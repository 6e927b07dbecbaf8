from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from bikerental.analytics_db import AnalyticsStore
from bikerental.auth import AuthUser, require_admin
from bikerental.config import Settings, get_settings
from bikerental.db import DbClient
from bikerental.dependencies import get_analytics_store, get_db_client, get_queue_client
from bikerental.maintenance import forecast_summary, sorted_predictions
from bikerental.notifications import enqueue_job
from bikerental.queue import JobQueue
from bikerental.schemas import JobAcceptedResponse
from bikerental.types import JobKind

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.get("/predictions")
def predictions(
    db: DbClient = Depends(get_db_client),
    store: AnalyticsStore = Depends(get_analytics_store),
):
    """Latest model metrics and per-bike km until maintenance, most urgent first."""
    names = {b.id: b.name for b in db.list_bikes()}
    metrics = store.latest_metrics()
    items = []
    for prediction in sorted_predictions(store.list_predictions()):
        payload = prediction.as_dict()
        payload["bikeName"] = names.get(prediction.bike_id)
        items.append(payload)
    return {
        "metrics": metrics.as_dict() if metrics else None,
        "predictions": items,
    }


@router.post("/train", status_code=202, response_model=JobAcceptedResponse)
def train(
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
    queue: JobQueue = Depends(get_queue_client),
    settings: Settings = Depends(get_settings),
):
    if not settings.maintenance_service_url:
        raise HTTPException(status_code=503, detail="Maintenance service is not configured")
    job = enqueue_job(db, queue, JobKind.MAINTENANCE_TRAIN, {"requestedBy": admin.email})
    return JobAcceptedResponse(job_id=job.job_id, status=job.status.name)


@router.get("/forecast")
def forecast(
    store: AnalyticsStore = Depends(get_analytics_store),
    settings: Settings = Depends(get_settings),
):
    points = store.list_forecast()
    today = datetime.now(settings.display_timezone).date()
    return {
        "points": [p.as_dict() for p in points],
        "nextMonth": forecast_summary(points, today),
    }
