"""
Student grievance tracking endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from transport_admin.api import deps
from transport_admin.api.utils import envelope, unwrap_result
from transport_admin.core.security import RequestContext
from transport_admin.schemas.grievance import StudentCommunicationRequest
from transport_admin.services.grievance import StudentTrackingService

router = APIRouter(prefix="/student/grievances", tags=["Student Tracking"])


@router.get("/tracking")
def get_tracking(
    student_id: str = Query(..., alias="studentId", min_length=1),
    grievance_id: Optional[str] = Query(None, alias="grievanceId"),
    include_history: bool = Query(False, alias="includeHistory"),
    ctx: RequestContext = Depends(deps.get_request_context),
    db: Session = Depends(deps.get_db),
):
    """Students see only their own grievances; admins may look up any student."""
    result = StudentTrackingService(db).get_tracking(
        student_id,
        ctx,
        grievance_id=grievance_id,
        include_history=include_history,
    )
    return envelope(unwrap_result(result))


@router.post("/tracking", status_code=status.HTTP_201_CREATED)
def submit_communication(
    payload: StudentCommunicationRequest,
    ctx: RequestContext = Depends(deps.require_student),
    db: Session = Depends(deps.get_db),
):
    result = StudentTrackingService(db).submit(payload, ctx)
    return envelope(unwrap_result(result), result.message)
