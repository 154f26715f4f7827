"""
API v1 router: aggregates all endpoint modules.
"""

from fastapi import APIRouter

from transport_admin.api.v1 import admin_grievances, audit_logs, gps, student_tracking

router = APIRouter(
    responses={
        400: {"description": "Bad Request"},
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        404: {"description": "Not Found"},
        500: {"description": "Internal Server Error"},
        503: {"description": "Service Unavailable"},
    }
)

router.include_router(admin_grievances.router)
router.include_router(student_tracking.router)
router.include_router(gps.router)
router.include_router(audit_logs.router)
