"""API v1 router aggregator.

Mounted at /api/v1 by main.create_app().
"""

from fastapi import APIRouter

from talentdesk.api.v1 import auth

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
