"""
Base service class providing common functionality for all services.
"""

from abc import ABC
from typing import Any, Dict, Generic, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.exceptions import (
    AuthorizationError,
    BaseAppException,
    ConfigurationError,
    ExternalServiceError,
    ResourceNotFoundError,
    ValidationError,
)
from transport_admin.core.logging import get_logger
from transport_admin.repositories.base.base_repository import BaseRepository
from transport_admin.services.base.service_result import (
    ErrorCode,
    ErrorSeverity,
    ServiceError,
    ServiceResult,
)

TModel = TypeVar("TModel")
TRepo = TypeVar("TRepo", bound=BaseRepository)


class BaseService(ABC, Generic[TModel, TRepo]):
    """
    Base service with common behaviors:
    - Shared logger and db session
    - Consistent error handling via ServiceResult
    - Transaction management utilities
    """

    def __init__(self, repository: TRepo, db_session: Session):
        """
        Initialize base service.

        Args:
            repository: Repository instance for data access
            db_session: SQLAlchemy database session
        """
        self.repository: TRepo = repository
        self.db: Session = db_session
        self._logger = get_logger(self.__class__.__name__)

    # -------------------------------------------------------------------------
    # Exception & Error Handling
    # -------------------------------------------------------------------------

    def _handle_exception(
        self,
        exception: Exception,
        operation: str,
        entity_ref: Optional[Any] = None,
        severity: ErrorSeverity = ErrorSeverity.CRITICAL,
        additional_context: Optional[Dict[str, Any]] = None,
    ) -> ServiceResult:
        """
        Convert exception to a ServiceResult failure with logging.

        Application exceptions keep their own message; anything else is
        reported generically so internal detail does not leak to callers.
        """
        context = {
            "operation": operation,
            "entity_ref": str(entity_ref) if entity_ref is not None else None,
            "exception_type": type(exception).__name__,
        }

        if additional_context:
            context.update(additional_context)

        self._logger.error(
            f"Error during {operation}: {exception}",
            exc_info=True,
            extra=context,
        )

        error_code = self._map_exception_to_error_code(exception)
        if isinstance(exception, BaseAppException):
            message = exception.message
        else:
            message = f"Failed to {operation}"

        return ServiceResult.failure(
            ServiceError(
                code=error_code,
                message=message,
                details={
                    "entity_ref": str(entity_ref) if entity_ref is not None else None,
                    "context": additional_context,
                },
                severity=severity,
            )
        )

    def _map_exception_to_error_code(self, exception: Exception) -> ErrorCode:
        """Map exception types to appropriate error codes."""
        exception_mapping = {
            ValidationError: ErrorCode.VALIDATION_ERROR,
            ResourceNotFoundError: ErrorCode.NOT_FOUND,
            AuthorizationError: ErrorCode.INSUFFICIENT_PERMISSIONS,
            ConfigurationError: ErrorCode.CONFIGURATION_ERROR,
            ExternalServiceError: ErrorCode.EXTERNAL_SERVICE_ERROR,
            SQLAlchemyError: ErrorCode.INTERNAL_ERROR,
        }

        for exc_type, error_code in exception_mapping.items():
            if isinstance(exception, exc_type):
                return error_code

        return ErrorCode.INTERNAL_ERROR

    # -------------------------------------------------------------------------
    # Transaction Management
    # -------------------------------------------------------------------------

    def _commit(self) -> None:
        """Commit the current transaction with error handling."""
        try:
            self.db.commit()
            self._logger.debug("Transaction committed successfully")
        except Exception as e:
            self._logger.error(f"Commit failed: {e}", exc_info=True)
            self._rollback()
            raise

    def _rollback(self) -> None:
        """Rollback the current transaction, logging rollback errors."""
        try:
            self.db.rollback()
            self._logger.debug("Transaction rolled back")
        except SQLAlchemyError as e:
            # Rollback errors must not mask the original error
            self._logger.warning(f"Rollback failed: {e}")
