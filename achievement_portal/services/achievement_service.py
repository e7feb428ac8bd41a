from pathlib import PurePath
from typing import List, Optional, Tuple

from fastapi import UploadFile
from pydantic import ValidationError as PydanticValidationError
import structlog

from achievement_portal.exceptions import (
    NotFoundError,
    PayloadTooLargeError,
    StorageError,
    UnsupportedMediaError,
    ValidationError,
    errors_from_pydantic,
)
from achievement_portal.infrastructure.blob_store import BlobStore, CONTENT_TYPE_EXTENSIONS
from achievement_portal.models.achievement import Achievement
from achievement_portal.models.enums import AchievementCategory, AchievementStatus, ReviewAction
from achievement_portal.repositories.achievement_repository import AchievementRepository
from achievement_portal.schemas.achievements import AchievementCreate, AchievementPatch

logger = structlog.get_logger()

MAX_CERTIFICATE_BYTES = 5 * 1024 * 1024


class AchievementService:
    """
    Lifecycle of an achievement: submission, owner edits (which always send
    the record back to Pending), owner deletion and admin review.

    Blob and record mutations are ordered so that a record never points at a
    deleted certificate: a new certificate is stored before the record is
    switched to it, and a record is removed before its certificate.
    """

    def __init__(self, repo: AchievementRepository, blobs: BlobStore,
                 max_upload_bytes: int = MAX_CERTIFICATE_BYTES):
        self.repo = repo
        self.blobs = blobs
        self.max_upload_bytes = max_upload_bytes

    async def list_owned(self, owner_id: int) -> List[Achievement]:
        return await self.repo.get_by_owner(owner_id)

    async def submit(self, owner_id: int, metadata: dict, file: Optional[UploadFile]) -> Achievement:
        data = self._validate(AchievementCreate, metadata)
        content, content_type = await self._read_certificate(file)

        key = await self.blobs.put(content, content_type)

        try:
            achievement = await self.repo.create({
                "owner_id": owner_id,
                "title": data.title,
                "description": data.description,
                "category": data.category,
                "date": data.date,
                "certificate_ref": key,
                "certificate_original_name": _display_name(file.filename),
                "status": AchievementStatus.PENDING,
                "reviewer_comment": "",
            }, refresh=False)
        except Exception:
            await self._discard_blob(key, reason="record commit failed")
            raise

        await self.repo.refresh(achievement)

        logger.info("Achievement submitted", id=achievement.id, owner_id=owner_id,
                    category=achievement.category.value, certificate=key)
        return achievement

    async def edit(self, owner_id: int, id: int, patch: dict, file: Optional[UploadFile] = None) -> Achievement:
        achievement = await self.repo.find_owned(id, owner_id)
        if not achievement:
            logger.info("Edit rejected: not found or not owned", id=id, owner_id=owner_id)
            raise NotFoundError()

        changes = self._validate(AchievementPatch, patch).changes()

        old_key = achievement.certificate_ref
        new_key = None
        if file is not None:
            content, content_type = await self._read_certificate(file)
            new_key = await self.blobs.put(content, content_type)
            changes["certificate_ref"] = new_key
            changes["certificate_original_name"] = _display_name(file.filename)

        changes["status"] = AchievementStatus.PENDING
        changes["reviewer_comment"] = ""

        try:
            achievement = await self.repo.update(achievement, changes, refresh=False)
        except Exception:
            if new_key:
                await self._discard_blob(new_key, reason="record commit failed")
            raise

        # Committed: the record now owns new_key whatever happens below
        if new_key:
            await self._discard_blob(old_key, reason="certificate replaced")

        await self.repo.refresh(achievement)

        logger.info("Achievement edited", id=id, owner_id=owner_id,
                    fields=sorted(k for k in changes if k not in ("status", "reviewer_comment")))
        return achievement

    async def delete(self, owner_id: int, id: int) -> None:
        achievement = await self.repo.find_owned(id, owner_id)
        if not achievement:
            logger.info("Delete rejected: not found or not owned", id=id, owner_id=owner_id)
            raise NotFoundError()

        key = achievement.certificate_ref
        await self.repo.delete(achievement)
        await self._discard_blob(key, reason="achievement deleted")

        logger.info("Achievement deleted", id=id, owner_id=owner_id)

    async def admin_list(self, category: Optional[str] = None, status: Optional[str] = None) -> List[Achievement]:
        try:
            filters = {
                'category': AchievementCategory(category) if category else None,
                'status': AchievementStatus(status) if status else None,
            }
        except ValueError:
            # Unknown filter values match nothing
            return []

        return await self.repo.get(filters)

    async def review(self, id: int, action: str, comment: Optional[str] = None) -> Achievement:
        achievement = await self.repo.find(id)
        if not achievement:
            raise NotFoundError()

        try:
            review_action = ReviewAction(action)
        except ValueError:
            raise ValidationError("Invalid action", errors=[
                {"field": "action", "message": "Action must be 'approve' or 'reject'"}
            ])

        previous = achievement.status
        achievement = await self.repo.update(achievement, {
            "status": review_action.status,
            "reviewer_comment": comment or "",
        })

        logger.info("Achievement reviewed", id=id, action=review_action.value,
                    previous_status=previous.value, status=achievement.status.value)
        return achievement

    def _validate(self, schema, data: dict):
        try:
            return schema.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(errors=errors_from_pydantic(e)) from e

    async def _read_certificate(self, file: Optional[UploadFile]) -> Tuple[bytes, str]:
        if file is None or not file.filename:
            raise ValidationError("Certificate file is required",
                                  errors=[{"field": "certificate", "message": "Field required"}])

        content_type = (file.content_type or "").split(";")[0].strip().lower()
        if content_type not in CONTENT_TYPE_EXTENSIONS:
            logger.info("Upload rejected: unsupported type", content_type=content_type, filename=file.filename)
            raise UnsupportedMediaError()

        # One byte past the limit is enough to know it is too large
        content = await file.read(self.max_upload_bytes + 1)
        if len(content) > self.max_upload_bytes:
            logger.info("Upload rejected: too large", filename=file.filename, limit=self.max_upload_bytes)
            raise PayloadTooLargeError()

        if not content:
            raise ValidationError("Certificate file is empty",
                                  errors=[{"field": "certificate", "message": "File is empty"}])

        return content, content_type

    async def _discard_blob(self, key: str, reason: str):
        try:
            await self.blobs.delete(key)
        except StorageError as e:
            logger.error("Blob cleanup failed, leaving orphan", key=key, reason=reason, error=str(e))


def _display_name(filename: Optional[str]) -> Optional[str]:
    if not filename:
        return None
    return PurePath(filename.replace("\\", "/")).name[:255]
