from transport_admin.repositories.audit.audit_log_repository import AuditLogRepository

__all__ = ["AuditLogRepository"]
