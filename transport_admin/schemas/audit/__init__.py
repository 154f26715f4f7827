from transport_admin.schemas.audit.audit_log import AuditLogCreate, AuditLogDeleteRequest, AuditLogResponse

__all__ = ["AuditLogCreate", "AuditLogDeleteRequest", "AuditLogResponse"]
