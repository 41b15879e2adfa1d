"""
API package initialization.

Router modules for the TestIT Reports backend:
- statistics: Project statistics report and manual collection triggers
"""

from fastapi import APIRouter

from testit_reports.api.statistics import router as statistics_router

# Main API router
api_router = APIRouter()

api_router.include_router(statistics_router, prefix="/statistics", tags=["statistics"])

__all__ = [
    "api_router",
    "statistics_router",
]
