from transport_admin.models.audit.audit_log import AuditLog

__all__ = ["AuditLog"]
