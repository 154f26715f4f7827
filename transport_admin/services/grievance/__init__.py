"""
Grievance services.

- GrievanceService: create, list, update, soft delete, resolve, reopen
- GrievanceAssignmentService: assign, bulk assign, history
- GrievanceCommunicationService / GrievanceActivityService: messages and trail
- GrievanceDashboardService: assignee dashboard and quick actions
- GrievanceAssignerDashboardService: unassigned queue, team workload, recommendations
- GrievanceBulkService: bulk actions and their history
- GrievanceAnalyticsService: system-wide analytics
- StudentTrackingService: student view and submissions
"""

from transport_admin.services.grievance.grievance_activity_service import GrievanceActivityService
from transport_admin.services.grievance.grievance_analytics_service import GrievanceAnalyticsService
from transport_admin.services.grievance.grievance_assigner_dashboard_service import (
    GrievanceAssignerDashboardService,
)
from transport_admin.services.grievance.grievance_assignment_service import GrievanceAssignmentService
from transport_admin.services.grievance.grievance_bulk_service import GrievanceBulkService
from transport_admin.services.grievance.grievance_communication_service import (
    GrievanceCommunicationService,
)
from transport_admin.services.grievance.grievance_dashboard_service import GrievanceDashboardService
from transport_admin.services.grievance.grievance_service import GrievanceService
from transport_admin.services.grievance.student_tracking_service import StudentTrackingService

__all__ = [
    "GrievanceActivityService",
    "GrievanceAnalyticsService",
    "GrievanceAssignerDashboardService",
    "GrievanceAssignmentService",
    "GrievanceBulkService",
    "GrievanceCommunicationService",
    "GrievanceDashboardService",
    "GrievanceService",
    "StudentTrackingService",
]
