"""
Grievance communication service.

Internal messages are only ever returned when the caller asks for them and
is an admin; the student view always filters them out.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import ActivityVisibility, ParticipantType
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance_communication import GrievanceCommunication
from transport_admin.repositories.grievance import (
    GrievanceCommunicationRepository,
    GrievanceRepository,
)
from transport_admin.schemas.grievance.grievance_communication import (
    CommunicationCreate,
    MarkCommunicationRead,
)
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_access import admin_can_modify
from transport_admin.services.grievance.grievance_activity_service import GrievanceActivityService

logger = logging.getLogger(__name__)


class GrievanceCommunicationService(BaseService[GrievanceCommunication, GrievanceCommunicationRepository]):

    def __init__(self, db: Session):
        super().__init__(GrievanceCommunicationRepository(db), db)
        self.grievances = GrievanceRepository(db)
        self.activities = GrievanceActivityService(db)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_messages(
        self,
        grievance_id: str,
        ctx: RequestContext,
        include_internal: bool = True,
    ) -> ServiceResult[List[GrievanceCommunication]]:
        """Messages oldest first. Students never see internal messages."""
        try:
            if not self.grievances.find_by_id(grievance_id):
                return ServiceResult.not_found("Grievance", grievance_id)

            show_internal = include_internal and ctx.is_admin
            return ServiceResult.success(
                self.repository.find_by_grievance(grievance_id, include_internal=show_internal)
            )
        except SQLAlchemyError as e:
            return self._handle_exception(e, "list grievance communications", grievance_id)

    def public_messages(self, grievance_id: str) -> List[GrievanceCommunication]:
        return self.repository.find_by_grievance(grievance_id, include_internal=False)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_message(
        self,
        grievance_id: str,
        payload: CommunicationCreate,
        ctx: RequestContext,
    ) -> ServiceResult[GrievanceCommunication]:
        """Post an admin message and touch the grievance's updated_at."""
        try:
            grievance = self.grievances.find_by_id(grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", grievance_id)

            if not admin_can_modify(grievance, ctx):
                return ServiceResult.unauthorized("post a message", f"grievance {grievance_id}")

            communication = self.add(
                grievance_id,
                sender_type=payload.sender_type,
                sender_id=payload.sender_id,
                recipient_type=payload.recipient_type,
                recipient_id=payload.recipient_id,
                message=payload.message,
                communication_type=payload.communication_type,
                is_internal=payload.is_internal,
                attachments=payload.attachments,
            )
            grievance.updated_at = utcnow()

            # Activity log failure does not fail the update
            self.activities.log(
                grievance_id,
                "communication_added",
                "Internal note added" if payload.is_internal else "Message sent",
                actor_type=payload.sender_type,
                actor_id=payload.sender_id,
                visibility=(
                    ActivityVisibility.INTERNAL.value
                    if payload.is_internal
                    else ActivityVisibility.PUBLIC.value
                ),
                details={"communication_type": payload.communication_type},
            )

            self._commit()
            self.db.refresh(communication)
            logger.info(f"Communication {communication.id} added to grievance {grievance_id}")
            return ServiceResult.success(communication, message="Communication created")

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "create grievance communication", grievance_id)

    def add(
        self,
        grievance_id: str,
        sender_type: str,
        sender_id: str,
        recipient_type: str,
        recipient_id: str,
        message: str,
        communication_type: str,
        is_internal: bool = False,
        attachments: Optional[list] = None,
    ) -> GrievanceCommunication:
        """Insert a message without committing."""
        communication = GrievanceCommunication(
            grievance_id=grievance_id,
            sender_type=sender_type,
            sender_id=sender_id,
            recipient_type=recipient_type,
            recipient_id=recipient_id,
            message=message,
            communication_type=communication_type,
            is_internal=is_internal,
            attachments=attachments,
        )
        return self.repository.create(communication, commit=False)

    def mark_read(
        self,
        grievance_id: str,
        payload: MarkCommunicationRead,
        now: Optional[datetime] = None,
    ) -> ServiceResult[GrievanceCommunication]:
        try:
            communication = self.repository.find_in_grievance(grievance_id, payload.communication_id)
            if not communication:
                return ServiceResult.not_found("Communication", payload.communication_id)

            communication.read_at = now or utcnow()
            communication.read_by = payload.read_by
            self._commit()
            self.db.refresh(communication)
            return ServiceResult.success(communication, message="Communication marked as read")
        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "mark communication read", payload.communication_id)


def system_recipient(grievance) -> tuple:
    """Recipient for a student message: the assignee, else the system."""
    if grievance.assigned_to:
        return ParticipantType.ADMIN.value, grievance.assigned_to
    return ParticipantType.SYSTEM.value, "system"
