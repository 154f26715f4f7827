"""
Student-facing grievance tracking.

Students only ever see public and system activity entries and non-internal
communications; admin-only grievance fields are stripped from the payload.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import (
    ActivityVisibility,
    CommunicationType,
    GrievanceStatus,
    ParticipantType,
    StudentCommunicationType,
)
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.repositories.grievance import GrievanceRepository
from transport_admin.repositories.transport import StudentRepository
from transport_admin.schemas.grievance import (
    CommunicationResponse,
    GrievanceResponse,
    StudentCommunicationRequest,
)
from transport_admin.schemas.grievance.grievance_response import StudentBrief
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_access import student_owns
from transport_admin.services.grievance.grievance_activity_service import (
    GrievanceActivityService,
    format_timeline_entry,
)
from transport_admin.services.grievance.grievance_communication_service import (
    GrievanceCommunicationService,
    system_recipient,
)
from transport_admin.services.grievance.grievance_metrics import (
    average,
    count_by,
    estimate_resolution,
    hours_between,
    is_overdue,
    priority_distribution,
    response_time_hours,
    status_display,
)

logger = logging.getLogger(__name__)

# Grievance fields never shown to students
ADMIN_ONLY_FIELDS = {"internal_notes", "escalated_to", "escalation_reason", "escalation_target"}

RECENT_UPDATE_GRIEVANCES = 5
MESSAGE_PREVIEW_LENGTH = 100


def preview(message: str) -> str:
    if len(message) > MESSAGE_PREVIEW_LENGTH:
        return f"{message[:MESSAGE_PREVIEW_LENGTH]}..."
    return message


def describe_student_message(kind: str, message: str, rating: Optional[int]) -> str:
    """Activity description for a student submission."""
    if kind == StudentCommunicationType.FEEDBACK.value:
        description = f"Student provided feedback: {preview(message)}"
        if rating:
            description += f" (Rating: {rating}/5)"
        return description
    if kind == StudentCommunicationType.UPDATE_REQUEST.value:
        return f"Student requested update: {preview(message)}"
    if kind == StudentCommunicationType.ADDITIONAL_INFO.value:
        return f"Student provided additional information: {preview(message)}"
    if kind == StudentCommunicationType.SATISFACTION_RATING.value:
        description = f"Student rated resolution: {rating}/5"
        if message:
            description += f" - {preview(message)}"
        return description
    return f"Student comment: {preview(message)}"


def status_info(grievance: Grievance, now: datetime) -> Dict[str, Any]:
    age_hours = int(hours_between(grievance.created_at, now))
    unresolved = grievance.status != GrievanceStatus.RESOLVED.value
    expected = grievance.expected_resolution_date
    return {
        "current_status": grievance.status,
        "age_hours": age_hours,
        "age_days": age_hours // 24,
        "is_overdue": is_overdue(grievance, now),
        "expected_resolution": expected.isoformat() if expected else None,
        "resolved_at": grievance.resolved_at.isoformat() if grievance.resolved_at else None,
        "response_time_hours": response_time_hours(grievance),
        "next_update_expected": expected.isoformat() if expected and unresolved else None,
    }


class StudentTrackingService(BaseService[Grievance, GrievanceRepository]):

    def __init__(self, db: Session):
        super().__init__(GrievanceRepository(db), db)
        self.students = StudentRepository(db)
        self.activities = GrievanceActivityService(db)
        self.communications = GrievanceCommunicationService(db)

    # -------------------------------------------------------------------------
    # Tracking view
    # -------------------------------------------------------------------------

    def get_tracking(
        self,
        student_id: str,
        ctx: RequestContext,
        grievance_id: Optional[str] = None,
        include_history: bool = False,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        now = now or utcnow()
        if ctx.is_student and ctx.user_id != student_id:
            return ServiceResult.unauthorized("view grievances", f"student {student_id}")

        try:
            student = self.students.find_by_id(student_id)
            if not student:
                return ServiceResult.not_found("Student", student_id)

            grievances = self.repository.find_by_student(student_id, grievance_id)
            enriched = [self._enrich(g, include_history, now) for g in grievances]
        except SQLAlchemyError as e:
            return self._handle_exception(e, "fetch grievance tracking", student_id)

        response_times = [
            e["status_info"]["response_time_hours"] for e in enriched
            if e["status_info"]["response_time_hours"] is not None
        ]
        statistics = {
            "total_grievances": len(grievances),
            "open_grievances": len([g for g in grievances if g.status == GrievanceStatus.OPEN.value]),
            "in_progress_grievances": len(
                [g for g in grievances if g.status == GrievanceStatus.IN_PROGRESS.value]
            ),
            "resolved_grievances": len([g for g in grievances if g.status == GrievanceStatus.RESOLVED.value]),
            "overdue_grievances": len([e for e in enriched if e["status_info"]["is_overdue"]]),
            "avg_resolution_time": round(average(response_times)),
            "satisfaction_rating": self._average_rating(grievances),
        }

        recent_updates = [
            {
                "grievance_id": entry["id"],
                "subject": entry["subject"],
                "update": entry["activity_timeline"][0],
                "timestamp": entry["activity_timeline"][0]["timestamp"],
            }
            for entry in enriched[:RECENT_UPDATE_GRIEVANCES]
            if entry["activity_timeline"]
        ]
        recent_updates.sort(key=lambda update: update["timestamp"] or "", reverse=True)

        return ServiceResult.success({
            "student_info": StudentBrief.model_validate(student).model_dump(mode="json"),
            "grievances": enriched,
            "statistics": statistics,
            "recent_updates": recent_updates,
            "analytics": {
                "priority_distribution": priority_distribution(grievances),
                "category_distribution": count_by(grievances, "category"),
            },
            "last_updated": now.isoformat(),
        })

    def _enrich(self, grievance: Grievance, include_history: bool, now: datetime) -> Dict[str, Any]:
        entry = GrievanceResponse.model_validate(grievance).model_dump(mode="json", exclude=ADMIN_ONLY_FIELDS)
        entry["status_info"] = status_info(grievance, now)
        entry["estimated_resolution"] = estimate_resolution(grievance)
        entry["status_display"] = status_display(grievance.status)
        entry["activity_timeline"] = self._timeline(grievance.id) if include_history else []
        entry["communications"] = self._public_messages(grievance.id)
        return entry

    def _timeline(self, grievance_id: str) -> List[Dict[str, Any]]:
        # A failed enrichment query degrades to an empty list for this grievance
        try:
            entries = self.activities.timeline_for_student(grievance_id)
        except SQLAlchemyError as e:
            logger.warning(f"Activity timeline unavailable for grievance {grievance_id}: {e}")
            return []
        return [format_timeline_entry(a) for a in entries]

    def _public_messages(self, grievance_id: str) -> List[Dict[str, Any]]:
        try:
            messages = self.communications.public_messages(grievance_id)
        except SQLAlchemyError as e:
            logger.warning(f"Communications unavailable for grievance {grievance_id}: {e}")
            return []
        return [CommunicationResponse.model_validate(m).model_dump(mode="json") for m in messages]

    @staticmethod
    def _average_rating(grievances: List[Grievance]) -> Optional[float]:
        ratings = [g.satisfaction_rating for g in grievances if g.satisfaction_rating]
        return round(average(ratings), 2) if ratings else None

    # -------------------------------------------------------------------------
    # Student submissions
    # -------------------------------------------------------------------------

    def submit(
        self,
        payload: StudentCommunicationRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """
        Record a student message on their own grievance.

        A satisfaction rating is written onto the grievance only while it is
        resolved; otherwise it is kept in the activity details alone.
        """
        now = now or utcnow()
        if (
            payload.type == StudentCommunicationType.SATISFACTION_RATING.value
            and payload.rating is None
        ):
            return ServiceResult.validation_failure("A rating is required", field="rating")

        try:
            grievance = self.repository.find_by_id(payload.grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", payload.grievance_id)

            if grievance.student_id != payload.student_id or not student_owns(grievance, ctx):
                return ServiceResult.unauthorized("update", f"grievance {payload.grievance_id}")

            student = self.students.find_by_id(payload.student_id)
            details: Dict[str, Any] = {"message": payload.message, "type": payload.type}
            if payload.rating and payload.type in (
                StudentCommunicationType.FEEDBACK.value,
                StudentCommunicationType.SATISFACTION_RATING.value,
            ):
                details["rating"] = payload.rating

            recipient_type, recipient_id = system_recipient(grievance)
            self.communications.add(
                grievance.id,
                sender_type=ParticipantType.STUDENT.value,
                sender_id=payload.student_id,
                recipient_type=recipient_type,
                recipient_id=recipient_id,
                message=payload.message,
                communication_type=(
                    CommunicationType.FEEDBACK.value
                    if payload.type in (
                        StudentCommunicationType.FEEDBACK.value,
                        StudentCommunicationType.SATISFACTION_RATING.value,
                    )
                    else CommunicationType.COMMENT.value
                ),
                is_internal=False,
            )

            rating_recorded = (
                payload.type == StudentCommunicationType.SATISFACTION_RATING.value
                and grievance.status == GrievanceStatus.RESOLVED.value
            )
            if rating_recorded:
                grievance.satisfaction_rating = payload.rating
                grievance.satisfaction_feedback = payload.message
            grievance.updated_at = now
            self.db.flush()

            # Activity log failure does not fail the update
            self.activities.log(
                grievance.id,
                "comment_added",
                describe_student_message(payload.type, payload.message, payload.rating),
                actor_type=ParticipantType.STUDENT.value,
                actor_id=payload.student_id,
                actor_name=student.student_name if student else "Student",
                visibility=ActivityVisibility.PUBLIC.value,
                details=details,
            )

            self._commit()
            logger.info(
                f"Student {payload.student_id} submitted {payload.type} on grievance {grievance.id}"
                + (" with rating recorded" if rating_recorded else "")
            )
            return ServiceResult.success(
                {
                    "grievance_id": grievance.id,
                    "type": payload.type,
                    "message": payload.message,
                    "rating": payload.rating,
                    "rating_recorded": rating_recorded,
                    "timestamp": now.isoformat(),
                },
                message="Communication recorded successfully",
            )

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "record student communication", payload.grievance_id)
