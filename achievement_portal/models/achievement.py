from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Date, ForeignKey, Enum as SQLAlchemyEnum, DateTime
from sqlalchemy.orm import relationship

from achievement_portal.infrastructure.database.connection import Base
from achievement_portal.models.enums import AchievementCategory, AchievementStatus, enum_values


def _utcnow():
    return datetime.now(timezone.utc)


class Achievement(Base):
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    date = Column(Date, nullable=False)

    category = Column(SQLAlchemyEnum(AchievementCategory, native_enum=False, length=32,
                                     values_callable=enum_values), nullable=False)

    certificate_ref = Column(String(255), nullable=False)
    certificate_original_name = Column(String(255), nullable=True)

    status = Column(SQLAlchemyEnum(AchievementStatus, native_enum=False, length=16, values_callable=enum_values),
                    default=AchievementStatus.PENDING, index=True, nullable=False)

    reviewer_comment = Column(Text, nullable=False, default="")

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    owner = relationship("Users", back_populates="achievements")


# Registers the Users mapper that Achievement.owner refers to
from achievement_portal.models import user  # noqa: E402,F401
