"""
Grievance lifecycle service.

Owns creation, listing, status transitions, escalation, tag merging,
resolution, reopening and soft deletion. Every mutation writes its grievance
changes, assignment history and activity entries in one transaction.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from transport_admin.config.settings import settings
from transport_admin.core.pagination import normalize_pagination, pagination_payload
from transport_admin.core.security import RequestContext
from transport_admin.models.base.enums import (
    ActivityVisibility,
    CommunicationType,
    GrievanceStatus,
    ParticipantType,
)
from transport_admin.models.base.types import utcnow
from transport_admin.models.grievance.grievance import Grievance
from transport_admin.repositories.grievance import (
    GrievanceAssignmentRepository,
    GrievanceCategoryConfigRepository,
    GrievanceRepository,
)
from transport_admin.repositories.transport import AdminUserRepository, StudentRepository
from transport_admin.schemas.grievance import (
    GrievanceCreate,
    GrievanceDetail,
    GrievanceFilters,
    GrievanceResponse,
    GrievanceUpdate,
    ReopenGrievanceRequest,
    ResolveGrievanceRequest,
)
from transport_admin.services.base import BaseService, ServiceResult
from transport_admin.services.grievance.grievance_access import admin_can_modify
from transport_admin.services.grievance.grievance_activity_service import GrievanceActivityService
from transport_admin.services.grievance.grievance_assignment_service import GrievanceAssignmentService
from transport_admin.services.grievance.grievance_communication_service import (
    GrievanceCommunicationService,
)
from transport_admin.services.grievance.grievance_metrics import (
    format_hours,
    format_sla,
    hours_between,
    union_tags,
)

logger = logging.getLogger(__name__)

CREATION_ASSIGNMENT_REASON = "Assigned during creation"
DEFAULT_CLOSURE_REASON = "Deleted by admin"

# Update keys that steer the workflow rather than map onto columns
_CONTROL_KEYS = {"id", "merge_tags", "assigned_by", "assignment_reason"}


def stamp_resolution(grievance: Grievance, now: datetime) -> None:
    """
    Record a transition into resolved.

    resolved_at is set once; actual_resolution_time is measured from
    created_at on every transition.
    """
    if grievance.resolved_at is None:
        grievance.resolved_at = now
    grievance.actual_resolution_time = format_hours(hours_between(grievance.created_at, now))


class GrievanceService(BaseService[Grievance, GrievanceRepository]):
    """Grievance lifecycle engine."""

    def __init__(self, db: Session):
        super().__init__(GrievanceRepository(db), db)
        self.students = StudentRepository(db)
        self.admins = AdminUserRepository(db)
        self.configs = GrievanceCategoryConfigRepository(db)
        self.assignment_history = GrievanceAssignmentRepository(db)
        self.assignments = GrievanceAssignmentService(db)
        self.communications = GrievanceCommunicationService(db)
        self.activities = GrievanceActivityService(db)

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    def create_grievance(
        self,
        payload: GrievanceCreate,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Grievance]:
        """
        Create a grievance for an existing student.

        SLA hours come from the category configuration, defaulting to
        DEFAULT_SLA_HOURS. A supplied or auto-assigned admin starts the
        grievance in progress with an initial history row.
        """
        now = now or utcnow()
        subject = payload.subject.strip()
        description = payload.description.strip()
        if not subject or not description or not payload.category.strip():
            return ServiceResult.validation_failure(
                "Missing required fields",
                details={"required": ["student_id", "category", "subject", "description"]},
            )

        try:
            if not self.students.find_by_id(payload.student_id):
                return ServiceResult.not_found("Student", payload.student_id)

            config = self.configs.find_config(payload.category, payload.grievance_type)
            if config is None:
                logger.debug(
                    f"No configuration for category {payload.category}/{payload.grievance_type}, using defaults"
                )
            sla_hours = config.sla_hours if config and config.sla_hours else settings.DEFAULT_SLA_HOURS
            assigned_to = payload.assigned_to or (config.auto_assign_to if config else None)

            if assigned_to and not self.admins.find_by_id(assigned_to):
                return ServiceResult.not_found("Admin", assigned_to)

            grievance = Grievance(
                student_id=payload.student_id,
                route_id=payload.route_id,
                driver_name=payload.driver_name,
                vehicle_registration=payload.vehicle_registration,
                category=payload.category,
                grievance_type=payload.grievance_type,
                priority=payload.priority,
                urgency=payload.urgency,
                subject=subject,
                description=description,
                location_details=payload.location_details,
                incident_date=payload.incident_date,
                tags=payload.tags or None,
                internal_notes=payload.internal_notes,
                estimated_resolution_time=payload.estimated_resolution_time or format_sla(sla_hours),
                expected_resolution_date=now + timedelta(hours=sla_hours),
                status=(GrievanceStatus.IN_PROGRESS.value if assigned_to else GrievanceStatus.OPEN.value),
                assigned_to=assigned_to,
                created_at=now,
                updated_at=now,
            )
            self.repository.create(grievance, commit=False)

            if assigned_to:
                self.assignment_history.create_assignment(
                    grievance_id=grievance.id,
                    assigned_to=assigned_to,
                    assigned_by=ctx.user_id,
                    assignment_reason=CREATION_ASSIGNMENT_REASON,
                    priority=grievance.priority,
                    expected_resolution_date=grievance.expected_resolution_date,
                    assigned_at=now,
                )

            # Activity log failure does not fail the update
            self.activities.log(
                grievance.id,
                "grievance_created",
                f"Grievance created: {subject}",
                actor_id=ctx.user_id,
                actor_name=ctx.email or "Admin",
                visibility=ActivityVisibility.PUBLIC.value,
                new_values={"status": grievance.status, "assigned_to": assigned_to},
                is_milestone=True,
            )

            self._commit()
            logger.info(f"Grievance {grievance.id} created with status {grievance.status}")
            return ServiceResult.success(
                self.repository.find_with_relations(grievance.id),
                message="Grievance created successfully",
            )

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "create grievance", payload.student_id)

    # -------------------------------------------------------------------------
    # Read
    # -------------------------------------------------------------------------

    def get_grievance(self, grievance_id: str) -> ServiceResult[Dict[str, Any]]:
        try:
            grievance = self.repository.find_with_relations(grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", grievance_id)
            return ServiceResult.success(GrievanceDetail.model_validate(grievance).model_dump(mode="json"))
        except SQLAlchemyError as e:
            return self._handle_exception(e, "get grievance", grievance_id)

    def list_grievances(
        self,
        filters: GrievanceFilters,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Dict[str, Any]]:
        """Filtered, sorted page of grievances with pagination metadata."""
        now = now or utcnow()
        params = normalize_pagination(page, limit, settings.DEFAULT_GRIEVANCE_PAGE_SIZE)
        try:
            items, total = self.repository.search(filters, params.offset, params.limit, now)
            schema = GrievanceDetail if filters.include_comments else GrievanceResponse
            return ServiceResult.success({
                "grievances": [schema.model_validate(g).model_dump(mode="json") for g in items],
                "pagination": pagination_payload(params, total),
            })
        except SQLAlchemyError as e:
            return self._handle_exception(e, "list grievances")

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    def update_grievance(
        self,
        payload: GrievanceUpdate,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Grievance]:
        """
        Apply a partial update with the lifecycle rules.

        - entering ``resolved`` stamps resolved_at once and recomputes
          actual_resolution_time from created_at
        - a different ``assigned_to`` swaps the active history row
        - a different ``escalated_to`` stamps escalated_at
        - ``merge_tags`` unions tags instead of replacing them
        """
        now = now or utcnow()
        grievance_id = payload.id
        try:
            grievance = self.repository.find_by_id(grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", grievance_id)

            if not admin_can_modify(grievance, ctx):
                return ServiceResult.unauthorized("update", f"grievance {grievance_id}")

            updates = payload.model_dump(exclude_unset=True)
            changes = {k: v for k, v in updates.items() if k not in _CONTROL_KEYS}

            old_status = grievance.status
            new_status = changes.get("status")
            if new_status is None:
                changes.pop("status", None)
            elif new_status != old_status and new_status == GrievanceStatus.RESOLVED.value:
                stamp_resolution(grievance, now)

            new_assignee = changes.pop("assigned_to", None)
            old_assignee = grievance.assigned_to
            reassigned = None
            if new_assignee and new_assignee != old_assignee:
                if not self.admins.find_by_id(new_assignee):
                    return ServiceResult.not_found("Admin", new_assignee)
                reassigned = self.assignments.reassign(
                    grievance,
                    new_assignee,
                    assigned_by=updates.get("assigned_by") or ctx.user_id,
                    reason=updates.get("assignment_reason"),
                    now=now,
                )

            new_escalation = changes.get("escalated_to")
            escalated = bool(new_escalation and new_escalation != grievance.escalated_to)
            if escalated:
                changes["escalated_at"] = now
            elif new_escalation is None:
                changes.pop("escalated_to", None)

            if "tags" in changes:
                tags = changes["tags"] or []
                if updates.get("merge_tags"):
                    tags = union_tags(grievance.tags, tags)
                changes["tags"] = tags or None

            for key, value in changes.items():
                setattr(grievance, key, value)
            grievance.updated_at = now
            self.db.flush()

            self._log_update_activities(grievance, ctx, old_status, old_assignee, reassigned, escalated)

            self._commit()
            logger.info(f"Grievance {grievance_id} updated: {sorted(changes)}")
            return ServiceResult.success(
                self.repository.find_with_relations(grievance_id),
                message="Grievance updated successfully",
            )

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "update grievance", grievance_id)

    def _log_update_activities(
        self,
        grievance: Grievance,
        ctx: RequestContext,
        old_status: str,
        old_assignee: Optional[str],
        reassigned,
        escalated: bool,
    ) -> None:
        # Activity log failures do not fail the update
        actor_name = ctx.email or "Admin"
        if grievance.status != old_status:
            self.activities.log(
                grievance.id,
                "status_changed",
                f"Status changed from {old_status} to {grievance.status}",
                actor_id=ctx.user_id,
                actor_name=actor_name,
                old_values={"status": old_status},
                new_values={"status": grievance.status},
                is_milestone=grievance.status == GrievanceStatus.RESOLVED.value,
            )
        if reassigned is not None:
            self.activities.log(
                grievance.id,
                "grievance_reassigned",
                "Grievance reassigned",
                actor_id=ctx.user_id,
                actor_name=actor_name,
                visibility=ActivityVisibility.PRIVATE.value,
                old_values={"assigned_to": old_assignee},
                new_values={"assigned_to": grievance.assigned_to},
            )
        if escalated:
            self.activities.log(
                grievance.id,
                "grievance_escalated",
                "Grievance escalated",
                actor_id=ctx.user_id,
                actor_name=actor_name,
                visibility=ActivityVisibility.PUBLIC.value,
                details={"reason": grievance.escalation_reason},
                new_values={"escalated_to": grievance.escalated_to},
                is_milestone=True,
            )

    # -------------------------------------------------------------------------
    # Soft delete
    # -------------------------------------------------------------------------

    def close_grievance(
        self,
        grievance_id: str,
        ctx: RequestContext,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Grievance]:
        """
        Soft delete: close with a reason, never removing the row.

        closed_at records the closure; resolved_at is also stamped when it is
        still empty so older consumers reading resolved_at keep working.
        """
        now = now or utcnow()
        try:
            grievance = self.repository.find_by_id(grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", grievance_id)

            if not admin_can_modify(grievance, ctx):
                return ServiceResult.unauthorized("delete", f"grievance {grievance_id}")

            old_status = grievance.status
            grievance.status = GrievanceStatus.CLOSED.value
            grievance.closure_reason = reason or DEFAULT_CLOSURE_REASON
            grievance.closed_at = now
            if grievance.resolved_at is None:
                grievance.resolved_at = now
            grievance.updated_at = now
            self.db.flush()

            # Activity log failure does not fail the update
            self.activities.log(
                grievance.id,
                "grievance_closed",
                f"Grievance closed: {grievance.closure_reason}",
                actor_id=ctx.user_id,
                actor_name=ctx.email or "Admin",
                old_values={"status": old_status},
                new_values={"status": grievance.status},
                is_milestone=True,
            )

            self._commit()
            logger.info(f"Grievance {grievance_id} closed")
            return ServiceResult.success(grievance, message="Grievance deleted successfully")

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "delete grievance", grievance_id)

    # -------------------------------------------------------------------------
    # Resolve / reopen
    # -------------------------------------------------------------------------

    def resolve_grievance(
        self,
        grievance_id: str,
        payload: ResolveGrievanceRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Grievance]:
        now = now or utcnow()
        try:
            grievance = self.repository.find_by_id(grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", grievance_id)

            if not admin_can_modify(grievance, ctx):
                return ServiceResult.unauthorized("resolve", f"grievance {grievance_id}")

            if grievance.status == GrievanceStatus.RESOLVED.value:
                return ServiceResult.validation_failure("Grievance is already resolved", field="status")

            old_status = grievance.status
            grievance.status = GrievanceStatus.RESOLVED.value
            grievance.resolution = payload.resolution
            grievance.resolution_category = payload.resolution_category
            if payload.public_response:
                grievance.public_response = payload.public_response
            if payload.internal_notes:
                grievance.internal_notes = payload.internal_notes
            stamp_resolution(grievance, now)
            grievance.updated_at = now

            self.communications.add(
                grievance.id,
                sender_type=ParticipantType.ADMIN.value,
                sender_id=ctx.user_id,
                recipient_type=ParticipantType.STUDENT.value,
                recipient_id=grievance.student_id,
                message=payload.public_response or f"Your grievance has been resolved: {payload.resolution}",
                communication_type=CommunicationType.RESOLUTION.value,
                is_internal=False,
            )
            self.db.flush()

            # Activity log failure does not fail the update
            self.activities.log(
                grievance.id,
                "grievance_resolved",
                "Grievance resolved",
                actor_id=ctx.user_id,
                actor_name=ctx.email or "Admin",
                details={
                    "resolution": payload.resolution,
                    "resolution_category": payload.resolution_category,
                    "actual_resolution_time": grievance.actual_resolution_time,
                },
                old_values={"status": old_status},
                new_values={"status": grievance.status},
                is_milestone=True,
            )

            self._commit()
            logger.info(f"Grievance {grievance_id} resolved in {grievance.actual_resolution_time}")
            return ServiceResult.success(
                self.repository.find_with_relations(grievance_id),
                message="Grievance resolved successfully",
            )

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "resolve grievance", grievance_id)

    def reopen_grievance(
        self,
        grievance_id: str,
        payload: ReopenGrievanceRequest,
        ctx: RequestContext,
        now: Optional[datetime] = None,
    ) -> ServiceResult[Grievance]:
        """
        Move a resolved grievance back to in progress.

        resolved_at keeps the first resolution time; actual_resolution_time
        is cleared and recomputed on the next resolution.
        """
        now = now or utcnow()
        try:
            grievance = self.repository.find_by_id(grievance_id)
            if not grievance:
                return ServiceResult.not_found("Grievance", grievance_id)

            if not admin_can_modify(grievance, ctx):
                return ServiceResult.unauthorized("reopen", f"grievance {grievance_id}")

            if grievance.status != GrievanceStatus.RESOLVED.value:
                return ServiceResult.validation_failure("Only resolved grievances can be reopened", field="status")

            grievance.status = GrievanceStatus.IN_PROGRESS.value
            grievance.actual_resolution_time = None
            note = f"[REOPENED] {payload.reason}"
            grievance.internal_notes = f"{grievance.internal_notes}\n{note}" if grievance.internal_notes else note
            grievance.updated_at = now

            self.communications.add(
                grievance.id,
                sender_type=ParticipantType.ADMIN.value,
                sender_id=ctx.user_id,
                recipient_type=ParticipantType.STUDENT.value,
                recipient_id=grievance.student_id,
                message=f"Your grievance has been reopened: {payload.reason}",
                communication_type=CommunicationType.STATUS_CHANGE.value,
                is_internal=False,
            )
            self.db.flush()

            # Activity log failure does not fail the update
            self.activities.log(
                grievance.id,
                "grievance_reopened",
                f"Grievance reopened: {payload.reason}",
                actor_id=ctx.user_id,
                actor_name=ctx.email or "Admin",
                old_values={"status": GrievanceStatus.RESOLVED.value},
                new_values={"status": grievance.status},
                is_milestone=True,
            )

            self._commit()
            logger.info(f"Grievance {grievance_id} reopened")
            return ServiceResult.success(
                self.repository.find_with_relations(grievance_id),
                message="Grievance reopened successfully",
            )

        except SQLAlchemyError as e:
            self._rollback()
            return self._handle_exception(e, "reopen grievance", grievance_id)
