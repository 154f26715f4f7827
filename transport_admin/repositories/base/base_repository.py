"""
Base repository with standardized CRUD operations and error handling.

Provides the foundation for all domain repositories.
"""

from typing import Any, Dict, Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session

from transport_admin.core.exceptions import EntityAlreadyExistsError, RepositoryError
from transport_admin.core.logging import get_logger
from transport_admin.models.base import BaseModel

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with standardized operations.

    Provides create, lookup, counting and pagination with consistent error
    handling for all domain repositories.
    """

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    # ==================== Create Operations ====================

    def create(self, entity: ModelType, commit: bool = True) -> ModelType:
        """
        Persist a new entity.

        Args:
            entity: Entity to create
            commit: Whether to commit immediately (otherwise flush only)

        Raises:
            EntityAlreadyExistsError: If a uniqueness rule is violated
            RepositoryError: On any other database failure
        """
        try:
            self.db.add(entity)

            if commit:
                self.db.commit()
                self.db.refresh(entity)
            else:
                self.db.flush()

            logger.info(f"Created {self.model.__name__} with id: {entity.id}")
            return entity

        except IntegrityError as e:
            self.db.rollback()
            raise EntityAlreadyExistsError(
                f"{self.model.__name__} already exists",
                table=self.model.__tablename__,
            ) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise RepositoryError(f"Create failed: {str(e)}", operation="create") from e

    # ==================== Read Operations ====================

    def find_by_id(self, id: str) -> Optional[ModelType]:
        """Find entity by ID, or None."""
        try:
            return self.db.query(self.model).filter(self.model.id == id).first()
        except SQLAlchemyError as e:
            raise RepositoryError(f"Find by ID failed: {str(e)}", operation="find_by_id") from e

    # ==================== Aggregate Operations ====================

    def count(self, criteria: Optional[Dict[str, Any]] = None) -> int:
        """Count entities matching criteria."""
        try:
            query = self._apply_criteria(self.db.query(func.count(self.model.id)), criteria or {})
            return query.scalar() or 0
        except SQLAlchemyError as e:
            raise RepositoryError(f"Count failed: {str(e)}", operation="count") from e

    def paginate_query(self, query: Query, offset: int, limit: int) -> Tuple[List[ModelType], int]:
        """
        Count the full query, then fetch one page of it.

        Returns:
            (items, total_count)
        """
        try:
            total_count = query.order_by(None).count()
            items = query.offset(offset).limit(limit).all()
            return items, total_count
        except SQLAlchemyError as e:
            raise RepositoryError(f"Pagination failed: {str(e)}", operation="paginate") from e

    # ==================== Utility Methods ====================

    def _apply_criteria(self, query: Query, criteria: Dict[str, Any]) -> Query:
        for key, value in criteria.items():
            if hasattr(self.model, key):
                column = getattr(self.model, key)
                if isinstance(value, (list, tuple, set)):
                    query = query.filter(column.in_(value))
                else:
                    query = query.filter(column == value)
        return query
