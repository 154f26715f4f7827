"""
Database enums shared by models, schemas and services.
"""

import enum


class GrievanceStatus(str, enum.Enum):
    """Grievance lifecycle status."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"
    ESCALATED = "escalated"
    ON_HOLD = "on_hold"
    PENDING_APPROVAL = "pending_approval"


class GrievancePriority(str, enum.Enum):
    """Priority (also used for urgency)."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ParticipantType(str, enum.Enum):
    """Sender/recipient/actor kind on communications and activities."""
    STUDENT = "student"
    ADMIN = "admin"
    SYSTEM = "system"


class CommunicationType(str, enum.Enum):
    """Kind of grievance communication."""
    COMMENT = "comment"
    UPDATE = "update"
    STATUS_CHANGE = "status_change"
    RESOLUTION = "resolution"
    FEEDBACK = "feedback"
    INTERNAL_NOTE = "internal_note"


class ActivityVisibility(str, enum.Enum):
    """Who may see an activity-log entry."""
    PUBLIC = "public"
    PRIVATE = "private"
    INTERNAL = "internal"
    SYSTEM = "system"


class StudentCommunicationType(str, enum.Enum):
    """Message kinds a student may submit on the tracking view."""
    FEEDBACK = "feedback"
    UPDATE_REQUEST = "update_request"
    ADDITIONAL_INFO = "additional_info"
    SATISFACTION_RATING = "satisfaction_rating"
    OTHER = "other"


class AssigneeAction(str, enum.Enum):
    """Actions accepted by the assignee dashboard."""
    START_PROGRESS = "start_progress"
    RESOLVE = "resolve"
    UPDATE_PRIORITY = "update_priority"
    SET_DEADLINE = "set_deadline"
    ADD_NOTE = "add_note"


class BulkAction(str, enum.Enum):
    """Actions accepted by the bulk grievance endpoint."""
    ASSIGN = "assign"
    UPDATE_STATUS = "update_status"
    RESOLVE = "resolve"
    CLOSE = "close"
    UPDATE_PRIORITY = "update_priority"
    ADD_TAGS = "add_tags"


class AuditSeverity(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditStatus(str, enum.Enum):
    SUCCESS = "success"
    FAILED = "failed"
    PENDING = "pending"


class LocationSourceKind(str, enum.Enum):
    """Origin of a location reading."""
    VENDOR = "vendor"
    SMS = "sms"
    MANUAL = "manual"


class StalenessStatus(str, enum.Enum):
    """Read-time freshness bucket of a device location."""
    ONLINE = "online"
    RECENT = "recent"
    OFFLINE = "offline"


class DeviceStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"
