from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from bikerental.db import DbClient, LeaderboardRecord
from bikerental.dependencies import get_db_client
from bikerental.schemas import LeaderboardCreateRequest, LeaderboardUpdateRequest
from bikerental.workflows import ranked_leaderboard

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("")
def get_leaderboard(
    limit: int = Query(10), db: DbClient = Depends(get_db_client)
):
    entries = ranked_leaderboard(db, limit)
    return {"success": True, "entries": [e.as_dict() for e in entries]}


@router.post("")
def create_entry(
    payload: LeaderboardCreateRequest, db: DbClient = Depends(get_db_client)
):
    if not payload.name.strip():
        raise HTTPException(
            status_code=400, detail="name, distanceKm, and co2SavedKg are required."
        )
    entry = db.create_leaderboard_entry(
        LeaderboardRecord(
            name=payload.name.strip(),
            distance_km=payload.distance_km,
            co2_saved_kg=payload.co2_saved_kg,
            user_id=payload.user_id or None,
        )
    )
    return {"success": True, "entry": entry.as_dict()}


@router.put("")
def update_entry(
    payload: LeaderboardUpdateRequest, db: DbClient = Depends(get_db_client)
):
    changes = payload.model_dump(exclude={"id"}, exclude_none=True)
    entry = db.update_leaderboard_entry(payload.id, **changes)
    if entry is None:
        raise HTTPException(status_code=404, detail="Leaderboard entry not found")
    return {"success": True, "entry": entry.as_dict()}
