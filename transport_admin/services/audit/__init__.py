from transport_admin.services.audit.audit_log_service import (
    AuditLogService,
    AuditRequestInfo,
    client_ip,
)

__all__ = ["AuditLogService", "AuditRequestInfo", "client_ip"]
