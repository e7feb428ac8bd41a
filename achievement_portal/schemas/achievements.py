from datetime import date as date_type, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from achievement_portal.models.enums import AchievementCategory, AchievementStatus


class AchievementCreate(BaseModel):
    title: str = Field(..., max_length=255)
    category: AchievementCategory
    description: str = ""
    date: date_type

    @field_validator('title')
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required")
        return v

    @field_validator('description', mode='before')
    @classmethod
    def description_default(cls, v):
        return "" if v is None else v


class AchievementPatch(BaseModel):
    """Partial update. Only fields present in the payload are applied."""

    title: Optional[str] = Field(None, max_length=255)
    category: Optional[AchievementCategory] = None
    description: Optional[str] = None
    date: Optional[date_type] = None

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        return v.strip() if v is not None else v

    @model_validator(mode='after')
    def required_fields_not_null(self):
        for field in ('title', 'category', 'date'):
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True)
        if 'description' in data and data['description'] is None:
            data['description'] = ""
        return data


class ReviewSchema(BaseModel):
    action: str
    comment: Optional[str] = ""


class OwnerResponse(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)


class AchievementResponse(BaseModel):
    id: int
    owner_id: int
    title: str
    description: str
    date: date_type
    category: AchievementCategory
    certificate_ref: str
    certificate_url: Optional[str] = None
    certificate_original_name: Optional[str] = None
    status: AchievementStatus
    reviewer_comment: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AdminAchievementResponse(AchievementResponse):
    owner: OwnerResponse


class DeleteResponse(BaseModel):
    success: bool = True


class CategoryCount(BaseModel):
    category: AchievementCategory
    count: int


class StatusCount(BaseModel):
    status: AchievementStatus
    count: int


class MonthCount(BaseModel):
    month: str
    count: int


class AnalyticsResponse(BaseModel):
    by_category: List[CategoryCount]
    by_status: List[StatusCount]
    by_month: List[MonthCount]
