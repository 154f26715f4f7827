"""
Ownership rules for grievance mutations.
"""

from transport_admin.core.security import RequestContext
from transport_admin.models.grievance.grievance import Grievance


def admin_can_modify(grievance: Grievance, ctx: RequestContext) -> bool:
    """
    Admins may change unassigned grievances and those assigned to them.

    Elevated roles may change any grievance.
    """
    if not ctx.is_admin:
        return False
    if ctx.is_elevated:
        return True
    return grievance.assigned_to is None or grievance.assigned_to == ctx.user_id


def admin_is_assignee(grievance: Grievance, ctx: RequestContext) -> bool:
    """Strict form used by the assignee dashboard."""
    if not ctx.is_admin:
        return False
    return ctx.is_elevated or grievance.assigned_to == ctx.user_id


def student_owns(grievance: Grievance, ctx: RequestContext) -> bool:
    return ctx.is_student and grievance.student_id == ctx.user_id
