"""
FAQ bot, background job status and document URL signing.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from bikerental import faq
from bikerental.auth import AuthUser, require_admin
from bikerental.db import DbClient
from bikerental.dependencies import get_db_client, get_storage_client
from bikerental.schemas import FaqAnswer, FaqQuestion, JobStatusResponse, SignUrlResponse
from bikerental.storage import StorageClient

router = APIRouter()


@router.get("/faq", tags=["faq"])
def list_faq():
    return {"entries": [entry.as_dict() for entry in faq.FAQ_ENTRIES]}


@router.post("/faq/ask", response_model=FaqAnswer, tags=["faq"])
def ask_faq(payload: FaqQuestion):
    return FaqAnswer(**faq.answer(payload.question))


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
def job_status(job_id: str, db: DbClient = Depends(get_db_client)):
    job = db.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobStatusResponse(
        job_id=job.job_id,
        kind=job.kind,
        status=job.status.name,
        error=job.error,
    )


@router.get("/sign-url", response_model=SignUrlResponse)
def sign_url(
    path: str = Query(..., description="Object path in storage"),
    op: str = Query("get", pattern="^(get|put)$"),
    expires_in: int = Query(3600, ge=60, le=86400),
    admin: AuthUser = Depends(require_admin),
    storage: StorageClient = Depends(get_storage_client),
):
    if op == "get":
        url = storage.presign_get(path, expires_in=expires_in)
    else:
        url = storage.presign_put(path, expires_in=expires_in)
    return SignUrlResponse(url=url)
