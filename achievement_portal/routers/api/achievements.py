from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile as StarletteUploadFile

from achievement_portal.exceptions import ValidationError
from achievement_portal.infrastructure.blob_store import BlobStore
from achievement_portal.infrastructure.database.connection import get_db
from achievement_portal.middlewares.auth_middleware import admin_only, any_user
from achievement_portal.models.user import Users
from achievement_portal.repositories.achievement_repository import AchievementRepository
from achievement_portal.schemas.achievements import (
    AchievementResponse,
    AdminAchievementResponse,
    AnalyticsResponse,
    DeleteResponse,
    ReviewSchema,
)
from achievement_portal.services.achievement_service import AchievementService
from achievement_portal.services.analytics_service import AnalyticsService

router = APIRouter(
    prefix="/api/achievements",
    tags=["achievements"]
)

EDITABLE_FIELDS = ("title", "category", "description", "date")


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_achievement_service(request: Request, db: AsyncSession = Depends(get_db),
                            blobs: BlobStore = Depends(get_blob_store)):
    return AchievementService(AchievementRepository(db), blobs, request.app.state.settings.max_upload_bytes)


def get_analytics_service(db: AsyncSession = Depends(get_db)):
    return AnalyticsService(AchievementRepository(db))


def present(achievement, blobs: BlobStore, schema=AchievementResponse):
    response = schema.model_validate(achievement)
    response.certificate_url = blobs.url_for(achievement.certificate_ref)
    return response


async def read_patch(request: Request):
    """
    Reads an edit payload from either a JSON body or a multipart form.
    Only keys actually sent end up in the patch, empty strings included.
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("Malformed JSON body")
        if not isinstance(body, dict):
            raise ValidationError("JSON body must be an object")
        return {k: body[k] for k in EDITABLE_FIELDS if k in body}, None

    if not content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        return {}, None

    form = await request.form()
    patch = {k: form[k] for k in EDITABLE_FIELDS if k in form and isinstance(form[k], str)}

    certificate = form.get("certificate")
    # Browsers send an empty part when no file was chosen
    if not isinstance(certificate, StarletteUploadFile) or not certificate.filename:
        certificate = None

    return patch, certificate


@router.post('', response_model=AchievementResponse, status_code=201, name='api.achievements.store')
async def submit(
        title: Optional[str] = Form(None),
        category: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        date: Optional[str] = Form(None),
        certificate: Optional[UploadFile] = File(None),
        user: Users = Depends(any_user),
        service: AchievementService = Depends(get_achievement_service),
):
    metadata = {"title": title, "category": category, "description": description, "date": date}
    achievement = await service.submit(user.id, metadata, certificate)
    return present(achievement, service.blobs)


@router.get('/me', response_model=List[AchievementResponse], name='api.achievements.mine')
async def list_mine(user: Users = Depends(any_user),
                    service: AchievementService = Depends(get_achievement_service)):
    return [present(a, service.blobs) for a in await service.list_owned(user.id)]


@router.get('/stats/analytics', response_model=AnalyticsResponse, name='api.achievements.analytics')
async def analytics(user: Users = Depends(admin_only),
                    service: AnalyticsService = Depends(get_analytics_service)):
    return await service.summary()


@router.get('', response_model=List[AdminAchievementResponse], name='api.achievements.index')
async def admin_list(
        category: Optional[str] = None,
        status: Optional[str] = None,
        user: Users = Depends(admin_only),
        service: AchievementService = Depends(get_achievement_service),
):
    achievements = await service.admin_list(category=category, status=status)
    return [present(a, service.blobs, AdminAchievementResponse) for a in achievements]


@router.put('/{id}', response_model=AchievementResponse, name='api.achievements.update')
async def edit(id: int, request: Request,
               user: Users = Depends(any_user),
               service: AchievementService = Depends(get_achievement_service)):
    patch, certificate = await read_patch(request)
    achievement = await service.edit(user.id, id, patch, certificate)
    return present(achievement, service.blobs)


@router.delete('/{id}', response_model=DeleteResponse, name='api.achievements.destroy')
async def delete(id: int,
                 user: Users = Depends(any_user),
                 service: AchievementService = Depends(get_achievement_service)):
    await service.delete(user.id, id)
    return DeleteResponse()


@router.post('/{id}/review', response_model=AchievementResponse, name='api.achievements.review')
async def review(id: int, data: ReviewSchema,
                 user: Users = Depends(admin_only),
                 service: AchievementService = Depends(get_achievement_service)):
    achievement = await service.review(id, data.action, data.comment)
    return present(achievement, service.blobs)
