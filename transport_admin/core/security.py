"""
Request authentication for the transport administration backend.

Every handler receives an explicit RequestContext decoded from the caller's
bearer token instead of reading identity from ambient state.
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from transport_admin.config.settings import settings
from transport_admin.core.exceptions import InvalidTokenError, TokenExpiredError
from transport_admin.core.logging import get_logger

logger = get_logger(__name__)


class UserType(str, Enum):
    """Kind of principal making the request."""
    ADMIN = "admin"
    STUDENT = "student"


@dataclass(frozen=True)
class RequestContext:
    """
    Authenticated caller identity threaded into every handler.

    Attributes:
        user_id: Admin or student identifier (token subject)
        user_type: Whether the caller is an admin or a student
        role: Admin role name, used for the elevated-role bypass
        email: Optional email carried in the token
    """

    user_id: str
    user_type: UserType
    role: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.user_type == UserType.ADMIN

    @property
    def is_student(self) -> bool:
        return self.user_type == UserType.STUDENT

    @property
    def is_elevated(self) -> bool:
        """True when the admin's role may act on grievances assigned to others."""
        return self.is_admin and self.role in settings.ELEVATED_ADMIN_ROLES


class TokenManager:
    """JWT token management utilities"""

    @staticmethod
    def create_token(
        subject: str,
        user_type: UserType,
        role: Optional[str] = None,
        email: Optional[str] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a signed access token for a caller.

        Args:
            subject: Admin or student identifier
            user_type: Principal kind
            role: Admin role (ignored for students)
            email: Optional email claim
            expires_delta: Custom expiration time

        Returns:
            Encoded JWT token
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        claims: Dict[str, Any] = {
            "sub": subject,
            "user_type": user_type.value,
            "exp": expire,
            "iat": now,
            "jti": secrets.token_urlsafe(16),
        }
        if role:
            claims["role"] = role
        if email:
            claims["email"] = email

        return jwt.encode(claims, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def verify_token(token: str) -> Dict[str, Any]:
        """
        Verify and decode JWT token.

        Raises:
            InvalidTokenError: If token is invalid
            TokenExpiredError: If token has expired
        """
        try:
            return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError as e:
            logger.warning(f"Token verification failed: {str(e)}")
            raise InvalidTokenError(reason=str(e))


def context_from_token(token: str) -> RequestContext:
    """Decode a bearer token into a RequestContext."""
    payload = TokenManager.verify_token(token)

    subject = payload.get("sub")
    if not subject:
        raise InvalidTokenError(reason="missing subject")

    try:
        user_type = UserType(payload.get("user_type", UserType.ADMIN.value))
    except ValueError:
        raise InvalidTokenError(reason="unknown user type")

    return RequestContext(
        user_id=str(subject),
        user_type=user_type,
        role=payload.get("role"),
        email=payload.get("email"),
    )


__all__ = ["UserType", "RequestContext", "TokenManager", "context_from_token"]
