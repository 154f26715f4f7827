"""
Grievance list filters and sorting.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from transport_admin.schemas.common.base import BaseSchema

__all__ = ["DateRangeBucket", "GrievanceFilters", "GRIEVANCE_SORT_FIELDS", "SEARCH_FIELDS"]


class DateRangeBucket(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    ALL = "all"


GRIEVANCE_SORT_FIELDS = frozenset({
    "created_at",
    "updated_at",
    "priority",
    "urgency",
    "status",
    "category",
    "subject",
    "expected_resolution_date",
    "resolved_at",
})

# Columns covered by free-text search
SEARCH_FIELDS = (
    "subject",
    "description",
    "driver_name",
    "vehicle_registration",
    "location_details",
    "internal_notes",
)


class GrievanceFilters(BaseSchema):
    """Filters for the admin grievance list."""

    status: Optional[str] = None
    category: Optional[str] = None
    grievance_type: Optional[str] = None
    priority: Optional[str] = None
    urgency: Optional[str] = None
    assigned_to: Optional[str] = None
    unassigned: bool = False
    search: Optional[str] = None
    tags: Optional[List[str]] = None

    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    date_range: Optional[DateRangeBucket] = None

    include_resolved: bool = False
    include_comments: bool = False

    sort_by: str = Field(default="created_at")
    sort_order: str = Field(default="desc", pattern="^(asc|desc)$")

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v):
        if isinstance(v, str):
            return [tag.strip() for tag in v.split(",") if tag.strip()]
        return v

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v: str) -> str:
        if v not in GRIEVANCE_SORT_FIELDS:
            raise ValueError(f"sort_by must be one of: {', '.join(sorted(GRIEVANCE_SORT_FIELDS))}")
        return v
