"""
Rider-reported problems and their admin triage.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from bikerental.auth import AuthUser, get_optional_user, require_admin
from bikerental.db import DbClient, IssueRecord
from bikerental.dependencies import get_db_client, get_storage_client
from bikerental.schemas import IssueUpdateRequest
from bikerental.storage import StorageClient
from bikerental.types import IssueCategory, IssuePriority, IssueStatus
from bikerental.workflows import safe_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reported-issues", tags=["issues"])

ISSUE_IMAGE_FOLDER = "bike-rental/issues"


@router.post("", status_code=201)
async def report_issue(
    subject: str = Form(...),
    message: str = Form(...),
    category: str = Form(IssueCategory.OTHER.value),
    priority: str = Form(IssuePriority.MEDIUM.value),
    reportedBy: Optional[str] = Form(None),
    bikeId: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: Optional[AuthUser] = Depends(get_optional_user),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    if category not in {c.value for c in IssueCategory}:
        raise HTTPException(status_code=400, detail="Invalid category")
    if priority not in {p.value for p in IssuePriority}:
        raise HTTPException(status_code=400, detail="Invalid priority")
    reporter = (reportedBy or "").strip() or (user.email if user else "")
    if not subject.strip() or not message.strip() or not reporter:
        raise HTTPException(status_code=400, detail="subject, message and reportedBy are required")

    issue = IssueRecord(
        subject=subject.strip(),
        message=message.strip(),
        reported_by=reporter,
        category=category,
        priority=priority,
        bike_id=(bikeId or "").strip() or None,
    )
    if image is not None and image.filename:
        path = f"{ISSUE_IMAGE_FOLDER}/{issue.id}/{safe_filename(image.filename)}"
        issue.image_path = storage.upload_bytes(path, await image.read(), image.content_type)
    db.create_issue(issue)
    logger.info("Issue %s reported by %s (%s/%s)", issue.id, reporter, category, priority)
    return {"success": True, "issue": issue.as_dict()}


@router.get("")
def list_issues(
    status: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    priority: Optional[str] = Query(None),
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    issues = [
        issue
        for issue in db.list_issues()
        if (not status or status == "all" or issue.status == status)
        and (not category or category == "all" or issue.category == category)
        and (not priority or priority == "all" or issue.priority == priority)
    ]
    return {"success": True, "issues": [i.as_dict() for i in issues]}


@router.patch("/{issue_id}")
def update_issue(
    issue_id: str,
    payload: IssueUpdateRequest,
    admin: AuthUser = Depends(require_admin),
    db: DbClient = Depends(get_db_client),
):
    issue = db.get_issue(issue_id)
    if issue is None:
        raise HTTPException(status_code=404, detail="Issue not found")
    changes: dict = {}
    if payload.admin_notes is not None:
        changes["admin_notes"] = payload.admin_notes
    if payload.status is not None:
        changes["status"] = payload.status
        if payload.status == IssueStatus.RESOLVED.value:
            changes["resolved_at"] = time.time()
        if payload.status != IssueStatus.OPEN.value:
            changes["assigned_to"] = admin.email
    issue = db.update_issue(issue_id, **changes)
    return {"success": True, "issue": issue.as_dict()}
