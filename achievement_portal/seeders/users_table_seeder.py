import os

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from achievement_portal.config import Settings
from achievement_portal.exceptions import DuplicateEmailError
from achievement_portal.models.enums import UserRole
from achievement_portal.repositories.user_repository import UserRepository
from achievement_portal.services.auth_service import AuthService

logger = structlog.get_logger()


def admin_data() -> dict:
    return {
        "email": os.getenv("ADMIN_EMAIL", "admin@example.com"),
        "name": os.getenv("ADMIN_NAME", "Administrator"),
        "password": os.getenv("ADMIN_PASSWORD", "Admin123"),
    }


async def run(db: AsyncSession, settings: Settings, data: dict = None):
    """Creates the admin account unless a user with that email already exists."""
    data = data or admin_data()
    auth_service = AuthService(UserRepository(db), settings)

    try:
        user = await auth_service.create_user(data["name"], data["email"], data["password"], role=UserRole.ADMIN)
    except DuplicateEmailError:
        logger.info("Admin already present, skipping", email=data["email"])
        return None

    logger.info("Admin seeded", user_id=user.id, email=user.email)
    return user
