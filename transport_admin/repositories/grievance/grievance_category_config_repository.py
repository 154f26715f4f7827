"""
Category configuration lookups.
"""

from typing import Optional

from sqlalchemy.orm import Session

from transport_admin.models.grievance.grievance_category_config import GrievanceCategoryConfig
from transport_admin.repositories.base.base_repository import BaseRepository


class GrievanceCategoryConfigRepository(BaseRepository[GrievanceCategoryConfig]):

    def __init__(self, session: Session):
        super().__init__(GrievanceCategoryConfig, session)

    def find_config(self, category: str, grievance_type: str) -> Optional[GrievanceCategoryConfig]:
        return (
            self.db.query(GrievanceCategoryConfig)
            .filter(
                GrievanceCategoryConfig.category == category,
                GrievanceCategoryConfig.grievance_type == grievance_type,
                GrievanceCategoryConfig.is_active.is_(True),
            )
            .first()
        )
