from transport_admin.models.base.base_model import Base, BaseModel
from transport_admin.models.base.mixins import CreatedAtMixin, TimestampMixin
from transport_admin.models.base.types import JSONType, UTCDateTime, utcnow

__all__ = [
    "Base",
    "BaseModel",
    "TimestampMixin",
    "CreatedAtMixin",
    "JSONType",
    "UTCDateTime",
    "utcnow",
]
