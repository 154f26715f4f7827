from transport_admin.models.grievance.grievance import Grievance
from transport_admin.models.grievance.grievance_activity_log import GrievanceActivityLog
from transport_admin.models.grievance.grievance_assignment import GrievanceAssignment
from transport_admin.models.grievance.grievance_category_config import GrievanceCategoryConfig
from transport_admin.models.grievance.grievance_communication import GrievanceCommunication

__all__ = [
    "Grievance",
    "GrievanceActivityLog",
    "GrievanceAssignment",
    "GrievanceCategoryConfig",
    "GrievanceCommunication",
]
