"""
PawMatch — Main API Router

Aggregates all sub-routers under a single prefix so that ``pawmatch.main``
can mount the entire API surface with one ``include_router`` call.
"""

from fastapi import APIRouter

from pawmatch.api import matches, playdates, swipes

router = APIRouter()

router.include_router(swipes.router, prefix="/swipes", tags=["Swipes"])
router.include_router(matches.router, prefix="/matches", tags=["Matches"])
router.include_router(playdates.router, prefix="/playdates", tags=["Playdates"])
