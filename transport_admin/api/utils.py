"""
Helpers shared by route modules.
"""

from typing import Any, Optional, TypeVar

from transport_admin.core.exceptions import (
    AuthorizationError,
    BaseAppException,
    ConfigurationError,
    ErrorCode as AppErrorCode,
    ExternalServiceError,
    OperationError,
    ResourceNotFoundError,
    ValidationError,
)
from transport_admin.services.base import ErrorCode, ServiceResult

T = TypeVar("T")


def to_exception(result: ServiceResult[Any]) -> BaseAppException:
    """Map a failed ServiceResult onto the matching HTTP-aware exception."""
    error = result.error
    message = error.message if error else (result.message or "Operation failed")
    details = (error.details if error else None) or {}
    code = error.code if error else ErrorCode.INTERNAL_ERROR

    if code in (ErrorCode.VALIDATION_ERROR, ErrorCode.INVALID_STATE):
        field_errors = {error.field: [message]} if error and error.field else None
        exc: BaseAppException = ValidationError(message, field_errors=field_errors)
        exc.details.update({k: v for k, v in details.items() if v is not None})
        return exc
    if code == ErrorCode.NOT_FOUND:
        return ResourceNotFoundError(
            details.get("resource_type") or "Resource",
            details.get("resource_id"),
            message=message,
        )
    if code in (ErrorCode.UNAUTHORIZED, ErrorCode.INSUFFICIENT_PERMISSIONS):
        return AuthorizationError(message)
    if code == ErrorCode.CONFIGURATION_ERROR:
        return ConfigurationError(message, config_key=details.get("config_key"))
    if code in (ErrorCode.EXTERNAL_SERVICE_ERROR, ErrorCode.TIMEOUT):
        exc = ExternalServiceError(message, service_name=details.get("service"))
        exc.details.update({k: v for k, v in details.items() if k != "service"})
        return exc
    if code in (ErrorCode.ALREADY_EXISTS, ErrorCode.CONFLICT):
        return OperationError(message, error_code=AppErrorCode.DUPLICATE_ENTRY, status_code=409)
    return OperationError(message, error_code=AppErrorCode.INTERNAL_ERROR)


def unwrap_result(result: ServiceResult[T]) -> T:
    """Return the data of a successful result or raise the mapped exception."""
    if not result.is_success:
        raise to_exception(result)
    return result.data


def envelope(data: Any, message: Optional[str] = None) -> dict:
    """Standard success body."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body
