"""
Grievance communication and activity log repositories.
"""

from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from transport_admin.models.grievance.grievance_activity_log import GrievanceActivityLog
from transport_admin.models.grievance.grievance_communication import GrievanceCommunication
from transport_admin.repositories.base.base_repository import BaseRepository


class GrievanceCommunicationRepository(BaseRepository[GrievanceCommunication]):

    def __init__(self, session: Session):
        super().__init__(GrievanceCommunication, session)

    def find_by_grievance(
        self,
        grievance_id: str,
        include_internal: bool = False,
    ) -> List[GrievanceCommunication]:
        """Messages oldest first; internal messages only when asked for."""
        query = self.db.query(GrievanceCommunication).filter(
            GrievanceCommunication.grievance_id == grievance_id
        )
        if not include_internal:
            query = query.filter(GrievanceCommunication.is_internal.is_(False))
        return query.order_by(GrievanceCommunication.created_at.asc()).all()

    def find_in_grievance(self, grievance_id: str, communication_id: str) -> Optional[GrievanceCommunication]:
        return (
            self.db.query(GrievanceCommunication)
            .filter(
                GrievanceCommunication.id == communication_id,
                GrievanceCommunication.grievance_id == grievance_id,
            )
            .first()
        )


class GrievanceActivityRepository(BaseRepository[GrievanceActivityLog]):
    """Append-only activity trail."""

    def __init__(self, session: Session):
        super().__init__(GrievanceActivityLog, session)

    def find_by_grievance(
        self,
        grievance_id: str,
        visibilities: Optional[Iterable[str]] = None,
        limit: Optional[int] = None,
    ) -> List[GrievanceActivityLog]:
        """Entries newest first, optionally restricted to some visibilities."""
        query = self.db.query(GrievanceActivityLog).filter(
            GrievanceActivityLog.grievance_id == grievance_id
        )
        if visibilities is not None:
            query = query.filter(GrievanceActivityLog.visibility.in_(list(visibilities)))
        query = query.order_by(GrievanceActivityLog.created_at.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def find_recent(self, limit: int = 10) -> List[GrievanceActivityLog]:
        """Latest entries across all grievances."""
        return (
            self.db.query(GrievanceActivityLog)
            .order_by(GrievanceActivityLog.created_at.desc())
            .limit(limit)
            .all()
        )

    def find_by_type_prefix(self, prefix: str, limit: int, offset: int = 0) -> List[GrievanceActivityLog]:
        """Entries whose activity type starts with ``prefix``, newest first."""
        return (
            self.db.query(GrievanceActivityLog)
            .filter(GrievanceActivityLog.activity_type.like(f"{prefix}%"))
            .order_by(GrievanceActivityLog.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count_by_type_prefix(self, prefix: str) -> int:
        return (
            self.db.query(GrievanceActivityLog)
            .filter(GrievanceActivityLog.activity_type.like(f"{prefix}%"))
            .count()
        )
