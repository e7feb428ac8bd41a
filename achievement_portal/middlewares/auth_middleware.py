from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from achievement_portal.exceptions import ForbiddenError, UnauthenticatedError
from achievement_portal.infrastructure.database.connection import get_db
from achievement_portal.models.enums import UserRole
from achievement_portal.models.user import Users
from achievement_portal.repositories.user_repository import UserRepository
from achievement_portal.services.auth_service import AuthService

logger = structlog.get_logger()

# auto_error=False so that a missing header goes through our own 401 body
security = HTTPBearer(auto_error=False)


async def authenticate(
        request: Request,
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: AsyncSession = Depends(get_db),
) -> Users:
    """
    Resolves the bearer token to a user. Any failure (no header, wrong scheme,
    bad signature, expiry, unknown user) is a 401.
    """
    if credentials is None:
        if request.headers.get("authorization"):
            raise UnauthenticatedError("Invalid authorization header")
        raise UnauthenticatedError("No token provided")

    auth_service = AuthService(UserRepository(db), request.app.state.settings)
    user = await auth_service.user_from_token(credentials.credentials)

    # Endpoint-side log lines get it from contextvars, the request log from scope state
    structlog.contextvars.bind_contextvars(user_id=user.id)
    request.state.user_id = user.id
    return user


def require_roles(*roles: UserRole):
    allowed = frozenset(roles)

    async def dependency(user: Users = Depends(authenticate)) -> Users:
        if user.role not in allowed:
            logger.warning("Access denied", user_id=user.id, role=user.role.value,
                           required=sorted(r.value for r in allowed))
            raise ForbiddenError()
        return user

    return dependency


any_user = require_roles(UserRole.STUDENT, UserRole.ADMIN)
admin_only = require_roles(UserRole.ADMIN)
