"""
Main API router aggregator
"""
from fastapi import APIRouter

from nyaya_mitra.api.endpoints import (
    auth,
    documents,
    feedback,
    health,
    notifications,
    sos,
    users,
    whistleblower,
)

api_router = APIRouter()

# Include routers
api_router.include_router(health.router, prefix="/health", tags=["Health"])
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
api_router.include_router(sos.router, prefix="/sos", tags=["SOS"])
api_router.include_router(feedback.router, prefix="/feedback", tags=["Civic Feedback"])
api_router.include_router(whistleblower.router, prefix="/whistleblower", tags=["Whistleblower"])
