# transport_admin/api/deps.py
"""
FastAPI dependencies: database session, caller identity and audit context.

Example usage in a router:
    @router.get("/me")
    def read_me(ctx: RequestContext = Depends(deps.get_request_context)):
        return ctx
"""

from typing import Generator, Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from transport_admin.config.database import get_db_session
from transport_admin.core.exceptions import AuthenticationError, AuthorizationError
from transport_admin.core.logging import user_id as user_id_var
from transport_admin.core.security import RequestContext, context_from_token
from transport_admin.services.audit import AuditRequestInfo
from transport_admin.services.gps.vendor_source import VendorLocationSource

_bearer = HTTPBearer(auto_error=False)


# --- Database ------------------------------------------------------------------

def get_db() -> Generator[Session, None, None]:
    yield from get_db_session()


# --- Authentication & Authorization -------------------------------------------

def get_request_context(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> RequestContext:
    """Caller identity from the bearer token (401 when absent or invalid)."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")

    ctx = context_from_token(credentials.credentials)
    request.state.user_id = ctx.user_id
    user_id_var.set(ctx.user_id)
    return ctx


def require_admin(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not ctx.is_admin:
        raise AuthorizationError("Admin access required")
    return ctx


def require_student(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if not ctx.is_student:
        raise AuthorizationError("Student access required")
    return ctx


# --- Audit ----------------------------------------------------------------------

def get_audit_info(request: Request) -> AuditRequestInfo:
    return AuditRequestInfo.from_headers(request.headers)


# --- GPS providers --------------------------------------------------------------

def get_vendor_source(request: Request) -> VendorLocationSource:
    """Vendor client shared by every request, so discovered auth settings persist."""
    return request.app.state.vendor_source


def get_sms_client(request: Request) -> httpx.Client:
    return request.app.state.sms_client


__all__ = [
    "get_db",
    "get_request_context",
    "require_admin",
    "require_student",
    "get_audit_info",
    "get_vendor_source",
    "get_sms_client",
]
