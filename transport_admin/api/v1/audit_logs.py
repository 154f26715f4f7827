"""
Audit log endpoints.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from transport_admin.api import deps
from transport_admin.api.utils import envelope, unwrap_result
from transport_admin.core.security import RequestContext
from transport_admin.schemas.audit import AuditLogCreate, AuditLogDeleteRequest
from transport_admin.services.audit import AuditLogService, AuditRequestInfo

router = APIRouter(prefix="/admin/audit-logs", tags=["Audit Logs"])


@router.get("")
def list_audit_logs(
    page: int = 1,
    limit: Optional[int] = None,
    user_id: Optional[str] = None,
    action: Optional[str] = None,
    resource_type: Optional[str] = None,
    severity: Optional[str] = None,
    status_filter: Optional[str] = Query(None, alias="status"),
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    search: Optional[str] = None,
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder", pattern="^(asc|desc)$"),
    ctx: RequestContext = Depends(deps.require_admin),
    db: Session = Depends(deps.get_db),
):
    result = AuditLogService(db).list_logs(
        page=page,
        limit=limit,
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        severity=severity,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return {"success": True, **unwrap_result(result)}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_audit_log(
    payload: AuditLogCreate,
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    result = AuditLogService(db).create_entry(payload, ctx, info)
    return envelope(unwrap_result(result), result.message)


@router.delete("")
def delete_audit_logs(
    before_date: Optional[datetime] = None,
    ids: Optional[List[str]] = Query(None),
    ctx: RequestContext = Depends(deps.require_admin),
    info: AuditRequestInfo = Depends(deps.get_audit_info),
    db: Session = Depends(deps.get_db),
):
    payload = AuditLogDeleteRequest(before_date=before_date, ids=ids)
    result = AuditLogService(db).delete_logs(payload, ctx, info)
    return envelope(unwrap_result(result), result.message)
