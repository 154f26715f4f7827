"""
Audit log model for admin activity tracking.

Append-only: rows are created on every mutating admin action and only
removed by explicit retention cleanup.
"""

from typing import Optional

from sqlalchemy import CheckConstraint, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from transport_admin.models.base.base_model import BaseModel
from transport_admin.models.base.enums import AuditSeverity, AuditStatus
from transport_admin.models.base.mixins import CreatedAtMixin
from transport_admin.models.base.types import JSONType

__all__ = ["AuditLog"]


class AuditLog(BaseModel, CreatedAtMixin):
    """
    Audit trail entry for an admin action.

    Attributes:
        user_id: Admin who performed the action
        action: Dotted action name, e.g. grievances.created
        resource_type: Kind of entity acted upon
        changes: Before/after values
        log_metadata: Free-form context (stored in the ``metadata`` column)
        severity: info, warning, error or critical
        status: success, failed or pending
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_user_id", "user_id"),
        Index("ix_audit_logs_action", "action"),
        Index("ix_audit_logs_resource", "resource_type", "resource_id"),
        CheckConstraint(
            "severity IN ('info', 'warning', 'error', 'critical')",
            name="check_audit_severity",
        ),
        CheckConstraint(
            "status IN ('success', 'failed', 'pending')",
            name="check_audit_status",
        ),
        {"comment": "Admin audit trail"},
    )

    # Actor information
    user_id: Mapped[Optional[str]] = mapped_column(
        String(36),
        nullable=True,
        comment="Admin who performed the action",
    )
    user_email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    user_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Action details
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_type: Mapped[str] = mapped_column(String(100), nullable=False)
    resource_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    resource_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    changes: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    log_metadata: Mapped[Optional[dict]] = mapped_column("metadata", JSONType, nullable=True)

    # Request context
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    session_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    severity: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AuditSeverity.INFO.value,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=AuditStatus.SUCCESS.value,
    )
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, action={self.action}, user_id={self.user_id})>"
