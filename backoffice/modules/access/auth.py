"""JWT authentication dependency and role guards for FastAPI.

Validates Bearer tokens from the Authorization header and exposes the caller
as an :class:`AuthenticatedUser`. Admins manage assignments; vendor users
only see and progress their own.
"""

import logging
import uuid
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from backoffice.config import settings
from backoffice.exceptions import ForbiddenException, UnauthorizedException
from backoffice.models.enums import ActorType

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    """Represents the authenticated user extracted from a JWT token."""

    id: uuid.UUID
    email: str
    user_type: ActorType
    vendor_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.user_type == ActorType.ADMIN


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(credentials.credentials)

    try:
        vendor_claim = payload.get("vendor_id")
        user = AuthenticatedUser(
            id=uuid.UUID(payload["sub"]),
            email=payload["email"],
            user_type=ActorType(payload.get("type", ActorType.ADMIN.value)),
            vendor_id=uuid.UUID(vendor_claim) if vendor_claim else None,
        )
    except (KeyError, ValueError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc

    if user.user_type == ActorType.VENDOR and user.vendor_id is None:
        raise UnauthorizedException("Vendor token has no vendor_id claim")

    request.state.user = user
    return user


def require_admin(user: AuthenticatedUser) -> None:
    if not user.is_admin:
        raise ForbiddenException("This action requires an admin account")


def require_vendor_access(user: AuthenticatedUser, vendor_id: uuid.UUID) -> None:
    """Admins see every vendor; vendor users only themselves."""
    if user.is_admin:
        return
    if user.vendor_id != vendor_id:
        raise ForbiddenException("You can only access your own assignments")
