"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import activities, auth, citizens, notices, users

api_router = APIRouter()

# Login, logout, session check, profile
api_router.include_router(auth.router)

# Citizen registry and its trash
api_router.include_router(citizens.router)

# Back-office accounts and their trash
api_router.include_router(users.router)

# Dashboard notices, activity log
api_router.include_router(notices.router)
api_router.include_router(activities.router)
