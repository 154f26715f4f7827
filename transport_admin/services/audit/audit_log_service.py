"""
Admin audit trail.

``record`` never raises: callers on a primary write path get a failed
ServiceResult back and ignore it, so an audit failure cannot undo or block
the operation being audited.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.config.settings import settings
from transport_admin.core.exceptions import RepositoryError
from transport_admin.core.pagination import normalize_pagination, pagination_payload
from transport_admin.core.security import RequestContext
from transport_admin.models.audit.audit_log import AuditLog
from transport_admin.models.base.enums import AuditSeverity, AuditStatus
from transport_admin.repositories.audit import AuditLogRepository
from transport_admin.schemas.audit import AuditLogCreate, AuditLogDeleteRequest, AuditLogResponse
from transport_admin.services.base import BaseService, ServiceResult

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def client_ip(headers: Mapping[str, str]) -> str:
    """First hop of x-forwarded-for, then x-real-ip, then x-client-ip."""
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return headers.get("x-real-ip") or headers.get("x-client-ip") or UNKNOWN_CLIENT


@dataclass(frozen=True)
class AuditRequestInfo:
    ip_address: str = UNKNOWN_CLIENT
    user_agent: Optional[str] = None
    session_id: Optional[str] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "AuditRequestInfo":
        return cls(
            ip_address=client_ip(headers),
            user_agent=headers.get("user-agent"),
            session_id=headers.get("x-session-id"),
        )


class AuditLogService(BaseService[AuditLog, AuditLogRepository]):

    def __init__(self, db: Session):
        super().__init__(AuditLogRepository(db), db)

    def record(
        self,
        action: str,
        resource_type: str,
        ctx: Optional[RequestContext] = None,
        request_info: Optional[AuditRequestInfo] = None,
        resource_id: Optional[str] = None,
        resource_name: Optional[str] = None,
        changes: Optional[Dict[str, Any]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        severity: str = AuditSeverity.INFO.value,
        status: str = AuditStatus.SUCCESS.value,
        error_message: Optional[str] = None,
    ) -> ServiceResult[AuditLog]:
        info = request_info or AuditRequestInfo()
        entry = AuditLog(
            user_id=ctx.user_id if ctx else None,
            user_email=ctx.email if ctx else None,
            user_role=ctx.role if ctx else None,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            resource_name=resource_name,
            changes=changes,
            log_metadata=metadata,
            ip_address=info.ip_address,
            user_agent=info.user_agent,
            session_id=info.session_id,
            severity=severity,
            status=status,
            error_message=error_message,
        )
        try:
            created = self.repository.create(entry)
        except (RepositoryError, SQLAlchemyError) as e:
            return self._handle_exception(e, "record audit log", action)
        return ServiceResult.success(created)

    def create_entry(
        self,
        payload: AuditLogCreate,
        ctx: RequestContext,
        request_info: AuditRequestInfo,
    ) -> ServiceResult[Dict[str, Any]]:
        result = self.record(
            payload.action,
            payload.resource_type,
            ctx=ctx,
            request_info=request_info,
            resource_id=payload.resource_id,
            resource_name=payload.resource_name,
            changes=payload.changes,
            metadata=payload.metadata,
            severity=payload.severity,
            status=payload.status,
            error_message=payload.error_message,
        )
        if not result.is_success:
            return result
        return ServiceResult.success(
            AuditLogResponse.model_validate(result.data).model_dump(mode="json", by_alias=True),
            message="Audit log created successfully",
        )

    def list_logs(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        user_id: Optional[str] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        severity: Optional[str] = None,
        status: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> ServiceResult[Dict[str, Any]]:
        if date_from and date_to and date_from > date_to:
            return ServiceResult.validation_failure("date_from must not be after date_to", field="date_from")

        params = normalize_pagination(page, limit, default_limit=settings.DEFAULT_AUDIT_PAGE_SIZE)
        try:
            logs, total = self.repository.search(
                params.offset,
                params.limit,
                user_id=user_id,
                action=action,
                resource_type=resource_type,
                severity=severity,
                status=status,
                date_from=date_from,
                date_to=date_to,
                search=search,
                sort_by=sort_by,
                sort_order=sort_order,
            )
        except SQLAlchemyError as e:
            return self._handle_exception(e, "list audit logs")

        return ServiceResult.success({
            "logs": [
                AuditLogResponse.model_validate(log).model_dump(mode="json", by_alias=True) for log in logs
            ],
            "pagination": pagination_payload(params, total),
        })

    def delete_logs(
        self,
        payload: AuditLogDeleteRequest,
        ctx: RequestContext,
        request_info: AuditRequestInfo,
    ) -> ServiceResult[Dict[str, Any]]:
        """Retention cleanup; the deletion itself is audited as a warning."""
        try:
            deleted = self.repository.delete_matching(before_date=payload.before_date, ids=payload.ids)
        except RepositoryError as e:
            return self._handle_exception(e, "delete audit logs")

        logger.warning(f"{deleted} audit log entries deleted by {ctx.user_id}")
        # Audit failure does not fail the deletion
        self.record(
            "audit_logs.deleted",
            "audit_logs",
            ctx=ctx,
            request_info=request_info,
            metadata={
                "deleted_count": deleted,
                "before_date": payload.before_date.isoformat() if payload.before_date else None,
                "ids": payload.ids,
            },
            severity=AuditSeverity.WARNING.value,
        )
        return ServiceResult.success(
            {"deleted_count": deleted},
            message=f"Deleted {deleted} audit log entries",
        )
