"""
Admin grievance endpoints.

Static sub-paths (bulk, bulk-assign, the dashboards, analytics) are declared
before ``/{grievance_id}`` so they are not captured as ids.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from transport_admin.api import deps
from transport_admin.api.utils import envelope, unwrap_result
from transport_admin.core.security import RequestContext
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.schemas.grievance import (
    ActivityCreate,
    AssigneeActionRequest,
    AssignerAssignRequest,
    AssignGrievanceRequest,
    BulkActionRequest,
    BulkAssignRequest,
    CommunicationCreate,
    CommunicationResponse,
    DateRangeBucket,
    GrievanceCreate,
    GrievanceFilters,
    GrievanceResponse,
    GrievanceUpdate,
    MarkCommunicationRead,
    ReopenGrievanceRequest,
    ResolveGrievanceRequest,
)
from transport_admin.services.audit import AuditLogService, AuditRequestInfo
from transport_admin.services.grievance import (
    GrievanceActivityService,
    GrievanceAnalyticsService,
    GrievanceAssignerDashboardService,
    GrievanceAssignmentService,
    GrievanceBulkService,
    GrievanceCommunicationService,
    GrievanceDashboardService,
    GrievanceService,
)

router = APIRouter(prefix="/admin/grievances", tags=["Grievances"])


def _serialize(grievance: Grievance) -> Dict[str, Any]:
    return GrievanceResponse.model_validate(grievance).model_dump(mode="json")


def _audit(
    db: Session,
    action: str,
    ctx: RequestContext,
    info: AuditRequestInfo,
    grievance: Optional[Grievance] = None,
    resource_id: Optional[str] = None,
    changes: Optional[Dict[str, Any]] = None,
) -> None:
    # Audit failure does not fail the request
    AuditLogService(db).record(
        action,
        "grievance",
        ctx=ctx,
        request_info=info,
        resource_id=grievance.id if grievance else resource_id,
        resource_name=grievance.subject if grievance else None,
        changes=changes,
    )


# --- Collection -----------------------------------------------------------------

@router.get("")
def list_grievances(
    page: int = Query(1),
    limit: Optional[int] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    category: Optional[str] = None,
    grievance_type: Optional[str] = None,
    priority: Optional[str] = None,
    urgency: Optional[str] = None,
    assigned_to: Optional[str] = None,
    unassigned: bool = False,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    date_range: Optional[DateRangeBucket] = None,
    include_resolved: bool = False,
    include_comments: bool = False,
    tags: Optional[str] = Query(None, description="Comma separated; matches any"),
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    filters = GrievanceFilters(
        status=status_filter,
        category=category,
        grievance_type=grievance_type,
        priority=priority,
        urgency=urgency,
        assigned_to=assigned_to,
        unassigned=unassigned,
        search=search,
        tags=tags,
        date_from=date_from,
        date_to=date_to,
        date_range=date_range,
        include_resolved=include_resolved,
        include_comments=include_comments,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    data = unwrap_result(GrievanceService(db).list_grievances(filters, page=page, limit=limit))
    return {"success": True, **data}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_grievance(
    payload: GrievanceCreate,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceService(db).create_grievance(payload, ctx)
    grievance = unwrap_result(result)
    _audit(db, "grievances.created", ctx, info, grievance=grievance)
    return envelope(_serialize(grievance), result.message)


@router.put("")
def update_grievance(
    payload: GrievanceUpdate,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceService(db).update_grievance(payload, ctx)
    grievance = unwrap_result(result)
    _audit(
        db,
        "grievances.updated",
        ctx,
        info,
        grievance=grievance,
        changes=payload.model_dump(mode="json", exclude_unset=True, exclude={"id"}),
    )
    return envelope(_serialize(grievance), result.message)


@router.delete("")
def delete_grievance(
    grievance_id: str = Query(..., alias="id", min_length=1),
    reason: Optional[str] = None,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceService(db).close_grievance(grievance_id, ctx, reason=reason)
    grievance = unwrap_result(result)
    _audit(
        db,
        "grievances.deleted",
        ctx,
        info,
        grievance=grievance,
        changes={"closure_reason": grievance.closure_reason},
    )
    return envelope(_serialize(grievance), result.message)


# --- Static sub-paths -----------------------------------------------------------

@router.post("/bulk-assign")
def bulk_assign(
    payload: BulkAssignRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceAssignmentService(db).bulk_assign(payload, ctx)
    data = unwrap_result(result)
    _audit(
        db,
        "grievances.bulk_assigned",
        ctx,
        info,
        changes={"grievance_ids": payload.grievance_ids, "assigned_to": payload.assigned_to},
    )
    return envelope(data, result.message)


@router.post("/bulk")
def bulk_action(
    payload: BulkActionRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceBulkService(db).apply(payload, ctx)
    data = unwrap_result(result)
    _audit(
        db,
        f"grievances.bulk_{data['action']}",
        ctx,
        info,
        changes={
            "grievance_ids": payload.grievance_ids,
            "data": payload.data,
            "affected_count": data["affected_count"],
        },
    )
    return envelope(data, result.message)


@router.get("/bulk")
def bulk_history(
    limit: Optional[int] = Query(None, ge=1),
    offset: int = Query(0, ge=0),
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    return envelope(unwrap_result(GrievanceBulkService(db).history(limit=limit, offset=offset)))


@router.get("/assigner-dashboard")
def assigner_dashboard(
    admin_id: Optional[str] = Query(None, alias="adminId"),
    time_range: Optional[str] = Query("7d", alias="timeRange"),
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    service = GrievanceAssignerDashboardService(db)
    return envelope(unwrap_result(service.get_dashboard(admin_id or ctx.user_id, time_range)))


@router.post("/assigner-dashboard")
def assigner_assign(
    payload: AssignerAssignRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceAssignerDashboardService(db).assign(payload, ctx)
    data = unwrap_result(result)
    _audit(
        db,
        "grievances.assigner_assigned",
        ctx,
        info,
        changes={
            "assignments": [item.model_dump(mode="json") for item in payload.assignments],
            "successful": data["successful"],
            "failed": data["failed"],
        },
    )
    return {"success": not data["errors"], "data": data, "message": result.message}


@router.get("/assignee-dashboard")
def assignee_dashboard(
    admin_id: Optional[str] = Query(None, alias="adminId"),
    time_range: Optional[str] = Query("7d", alias="timeRange"),
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    data = unwrap_result(GrievanceDashboardService(db).get_dashboard(admin_id or ctx.user_id, time_range))
    return envelope(data)


@router.put("/assignee-dashboard")
def assignee_action(
    payload: AssigneeActionRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceDashboardService(db).apply_action(payload, ctx)
    data = unwrap_result(result)
    _audit(
        db,
        f"grievances.{payload.action}",
        ctx,
        info,
        resource_id=payload.grievance_id,
        changes=data.get("updates"),
    )
    return envelope(data, result.message)


@router.get("/analytics")
def grievance_analytics(
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    assigned_to: Optional[str] = None,
    unassigned: bool = False,
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceAnalyticsService(db).get_analytics(
        date_from=date_from,
        date_to=date_to,
        assigned_to=assigned_to,
        unassigned=unassigned,
    )
    return envelope(unwrap_result(result))


# --- Single grievance -----------------------------------------------------------

@router.get("/{grievance_id}")
def get_grievance(
    grievance_id: str,
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    return envelope(unwrap_result(GrievanceService(db).get_grievance(grievance_id)))


@router.post("/{grievance_id}/assign")
def assign_grievance(
    grievance_id: str,
    payload: AssignGrievanceRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceAssignmentService(db).assign(grievance_id, payload, ctx)
    grievance = unwrap_result(result)
    _audit(db, "grievances.assigned", ctx, info, grievance=grievance, changes={"assigned_to": payload.assigned_to})
    return envelope(_serialize(grievance), result.message)


@router.post("/{grievance_id}/resolve")
def resolve_grievance(
    grievance_id: str,
    payload: ResolveGrievanceRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceService(db).resolve_grievance(grievance_id, payload, ctx)
    grievance = unwrap_result(result)
    _audit(db, "grievances.resolved", ctx, info, grievance=grievance)
    return envelope(_serialize(grievance), result.message)


@router.post("/{grievance_id}/reopen")
def reopen_grievance(
    grievance_id: str,
    payload: ReopenGrievanceRequest,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceService(db).reopen_grievance(grievance_id, payload, ctx)
    grievance = unwrap_result(result)
    _audit(db, "grievances.reopened", ctx, info, grievance=grievance, changes={"reason": payload.reason})
    return envelope(_serialize(grievance), result.message)


# --- Communications and activities ----------------------------------------------

@router.get("/{grievance_id}/communications")
def list_communications(
    grievance_id: str,
    include_internal: bool = True,
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    messages = unwrap_result(
        GrievanceCommunicationService(db).list_messages(grievance_id, ctx, include_internal=include_internal)
    )
    return envelope([CommunicationResponse.model_validate(m).model_dump(mode="json") for m in messages])


@router.post("/{grievance_id}/communications", status_code=status.HTTP_201_CREATED)
def create_communication(
    grievance_id: str,
    payload: CommunicationCreate,
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceCommunicationService(db).create_message(grievance_id, payload, ctx)
    message = unwrap_result(result)
    return envelope(CommunicationResponse.model_validate(message).model_dump(mode="json"), result.message)


@router.put("/{grievance_id}/communications")
def mark_communication_read(
    grievance_id: str,
    payload: MarkCommunicationRead,
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceCommunicationService(db).mark_read(grievance_id, payload)
    message = unwrap_result(result)
    return envelope(CommunicationResponse.model_validate(message).model_dump(mode="json"), result.message)


@router.get("/{grievance_id}/activities")
def list_activities(
    grievance_id: str,
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    return envelope(unwrap_result(GrievanceActivityService(db).list_for_admin(grievance_id)))


@router.post("/{grievance_id}/activities", status_code=status.HTTP_201_CREATED)
def add_activity(
    grievance_id: str,
    payload: ActivityCreate,
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    result = GrievanceActivityService(db).add_manual(grievance_id, payload, ctx)
    return envelope(unwrap_result(result), result.message)
