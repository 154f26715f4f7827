"""
ORM models. Importing this package registers every table on ``Base.metadata``.
"""

from transport_admin.models.audit import AuditLog
from transport_admin.models.base import Base, BaseModel
from transport_admin.models.grievance import (
    Grievance,
    GrievanceActivityLog,
    GrievanceAssignment,
    GrievanceCategoryConfig,
    GrievanceCommunication,
)
from transport_admin.models.transport import (
    AdminUser,
    GpsDevice,
    GpsLocationHistory,
    Route,
    Student,
    Vehicle,
)

__all__ = [
    "Base",
    "BaseModel",
    "AuditLog",
    "Grievance",
    "GrievanceActivityLog",
    "GrievanceAssignment",
    "GrievanceCategoryConfig",
    "GrievanceCommunication",
    "AdminUser",
    "GpsDevice",
    "GpsLocationHistory",
    "Route",
    "Student",
    "Vehicle",
]
