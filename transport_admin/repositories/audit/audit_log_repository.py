"""
Audit log repository: filtered listing and retention cleanup.
"""

from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.exceptions import RepositoryError
from transport_admin.models.audit.audit_log import AuditLog
from transport_admin.repositories.base.base_repository import BaseRepository

AUDIT_SORT_FIELDS = frozenset({"created_at", "action", "resource_type", "severity", "status", "user_id"})


class AuditLogRepository(BaseRepository[AuditLog]):

    def __init__(self, session: Session):
        super().__init__(AuditLog, session)

    # ==================== Query Operations ====================

    def search(
        self,
        offset: int,
        limit: int,
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
    ) -> Tuple[List[AuditLog], int]:
        query = self.db.query(AuditLog)

        if user_id:
            query = query.filter(AuditLog.user_id == user_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if resource_type:
            query = query.filter(AuditLog.resource_type == resource_type)
        if severity:
            query = query.filter(AuditLog.severity == severity)
        if status:
            query = query.filter(AuditLog.status == status)
        if date_from:
            query = query.filter(AuditLog.created_at >= date_from)
        if date_to:
            query = query.filter(AuditLog.created_at <= date_to)
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                or_(
                    AuditLog.action.ilike(pattern),
                    AuditLog.resource_type.ilike(pattern),
                    AuditLog.resource_name.ilike(pattern),
                    AuditLog.user_email.ilike(pattern),
                )
            )

        if sort_by not in AUDIT_SORT_FIELDS:
            sort_by = "created_at"
        column = getattr(AuditLog, sort_by)
        query = query.order_by(column.asc() if sort_order == "asc" else column.desc())

        return self.paginate_query(query, offset, limit)

    # ==================== Retention ====================

    def delete_matching(
        self,
        before_date: Optional[datetime] = None,
        ids: Optional[List[str]] = None,
    ) -> int:
        """Delete entries older than ``before_date`` and/or with the given ids."""
        try:
            query = self.db.query(AuditLog)
            if before_date:
                query = query.filter(AuditLog.created_at < before_date)
            if ids:
                query = query.filter(AuditLog.id.in_(ids))
            deleted = query.delete(synchronize_session=False)
            self.db.commit()
            return deleted
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Delete failed: {str(e)}", operation="delete") from e
