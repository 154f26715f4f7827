"""
Audit log request and response schemas.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, model_validator

from transport_admin.models.base.enums import AuditSeverity, AuditStatus
from transport_admin.schemas.common.base import BaseResponseSchema, BaseSchema

__all__ = ["AuditLogCreate", "AuditLogDeleteRequest", "AuditLogResponse"]


class AuditLogCreate(BaseSchema):
    action: str = Field(..., min_length=1, max_length=100)
    resource_type: str = Field(..., min_length=1, max_length=100)
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = None
    severity: AuditSeverity = AuditSeverity.INFO
    status: AuditStatus = AuditStatus.SUCCESS
    error_message: Optional[str] = None


class AuditLogDeleteRequest(BaseSchema):
    before_date: Optional[datetime] = None
    ids: Optional[List[str]] = None

    @model_validator(mode="after")
    def require_selector(self) -> "AuditLogDeleteRequest":
        if not self.before_date and not self.ids:
            raise ValueError("Either before_date or ids is required")
        return self


class AuditLogResponse(BaseResponseSchema):
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    resource_name: Optional[str] = None
    changes: Optional[Dict[str, Any]] = None
    log_metadata: Optional[Dict[str, Any]] = Field(None, serialization_alias="metadata")
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    session_id: Optional[str] = None
    severity: str
    status: str
    error_message: Optional[str] = None
