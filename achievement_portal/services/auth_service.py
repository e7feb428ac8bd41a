from typing import Optional, Tuple

from passlib.context import CryptContext
from sqlalchemy.exc import IntegrityError
import structlog

from achievement_portal.config import Settings
from achievement_portal.exceptions import DuplicateEmailError, InvalidCredentialsError, UnauthenticatedError
from achievement_portal.infrastructure.jwt_handler import TokenError, create_access_token, decode_access_token
from achievement_portal.models.enums import UserRole
from achievement_portal.models.user import Users
from achievement_portal.repositories.user_repository import UserRepository
from achievement_portal.schemas.auth import LoginSchema, RegisterSchema

logger = structlog.get_logger()
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


class AuthService:
    def __init__(self, repo: UserRepository, settings: Settings):
        self.repo = repo
        self.settings = settings

    def issue_token(self, user: Users) -> str:
        return create_access_token({"sub": str(user.id), "role": user.role.value}, self.settings)

    async def create_user(self, name: str, email: str, password: str, role: UserRole = UserRole.STUDENT) -> Users:
        email = email.lower()
        if await self.repo.find_by_email(email):
            logger.warning("Registration failed: email exists", email=email)
            raise DuplicateEmailError()

        try:
            user = await self.repo.create({
                "name": name,
                "email": email,
                "hashed_password": self.hash_password(password),
                "role": role,
            })
        except IntegrityError as e:
            # Lost a race against a concurrent registration with the same email
            logger.warning("Registration failed: email exists", email=email)
            raise DuplicateEmailError() from e

        logger.info("User registered", user_id=user.id, email=email, role=role.value)
        return user

    async def register(self, data: RegisterSchema) -> Tuple[Users, str]:
        user = await self.create_user(data.name, data.email, data.password)
        return user, self.issue_token(user)

    async def login(self, data: LoginSchema) -> Tuple[Users, str]:
        user = await self.repo.find_by_email(data.email)

        if not user:
            logger.warning("Login failed: user not found", email=data.email)
            raise InvalidCredentialsError()

        if not self.verify_password(data.password, user.hashed_password):
            logger.warning("Login failed: wrong password", email=data.email)
            raise InvalidCredentialsError()

        logger.info("User logged in", user_id=user.id, email=user.email, role=user.role.value)
        return user, self.issue_token(user)

    async def user_from_token(self, token: Optional[str]) -> Users:
        if not token:
            raise UnauthenticatedError("No token provided")

        try:
            payload = decode_access_token(token, self.settings)
        except TokenError as e:
            logger.info("Token rejected", reason=str(e))
            raise UnauthenticatedError() from e

        try:
            user_id = int(payload["sub"])
        except (TypeError, ValueError) as e:
            raise UnauthenticatedError("Invalid token") from e

        user = await self.repo.find(user_id)
        if not user:
            logger.info("Token rejected", reason="unknown user", user_id=user_id)
            raise UnauthenticatedError("Invalid token")

        return user

    @staticmethod
    def hash_password(password: str) -> str:
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        return pwd_context.verify(plain_password, hashed_password)
