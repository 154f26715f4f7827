from transport_admin.repositories.grievance.grievance_assignment_repository import (
    GrievanceAssignmentRepository,
)
from transport_admin.repositories.grievance.grievance_category_config_repository import (
    GrievanceCategoryConfigRepository,
)
from transport_admin.repositories.grievance.grievance_communication_repository import (
    GrievanceActivityRepository,
    GrievanceCommunicationRepository,
)
from transport_admin.repositories.grievance.grievance_repository import GrievanceRepository

__all__ = [
    "GrievanceActivityRepository",
    "GrievanceAssignmentRepository",
    "GrievanceCategoryConfigRepository",
    "GrievanceCommunicationRepository",
    "GrievanceRepository",
]
