"""
HTTP routes for the bike rental API.
"""

from fastapi import APIRouter

from bikerental.routes import (
    applications,
    auth,
    bikes,
    history,
    issues,
    leaderboard,
    maintenance,
    misc,
    telemetry,
)

router = APIRouter()
router.include_router(auth.router)
router.include_router(applications.router)
router.include_router(bikes.router)
router.include_router(leaderboard.router)
router.include_router(issues.router)
router.include_router(telemetry.router)
router.include_router(history.router)
router.include_router(maintenance.router)
router.include_router(misc.router)
