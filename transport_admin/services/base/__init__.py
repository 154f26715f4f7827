from transport_admin.services.base.base_service import BaseService
from transport_admin.services.base.service_result import (
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

__all__ = ["BaseService", "ErrorCode", "ErrorSeverity", "ServiceError", "ServiceResult"]
