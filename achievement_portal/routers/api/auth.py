from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from achievement_portal.infrastructure.database.connection import get_db
from achievement_portal.middlewares.auth_middleware import authenticate
from achievement_portal.models.user import Users
from achievement_portal.repositories.user_repository import UserRepository
from achievement_portal.schemas.auth import AuthResponse, LoginSchema, MeResponse, RegisterSchema, UserResponse
from achievement_portal.services.auth_service import AuthService

router = APIRouter(
    prefix="/api/auth",
    tags=["auth"]
)


def get_auth_service(request: Request, db: AsyncSession = Depends(get_db)):
    return AuthService(UserRepository(db), request.app.state.settings)


@router.post('/register', response_model=AuthResponse, status_code=201, name='api.auth.register')
async def register(data: RegisterSchema, service: AuthService = Depends(get_auth_service)):
    user, token = await service.register(data)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post('/login', response_model=AuthResponse, name='api.auth.login')
async def login(data: LoginSchema, service: AuthService = Depends(get_auth_service)):
    user, token = await service.login(data)
    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.get('/me', response_model=MeResponse, name='api.auth.me')
async def me(user: Users = Depends(authenticate)):
    return MeResponse(user=UserResponse.model_validate(user))
