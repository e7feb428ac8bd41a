from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Enum as SQLAlchemyEnum, DateTime
from sqlalchemy.orm import relationship

from achievement_portal.infrastructure.database.connection import Base
from achievement_portal.models.enums import UserRole, enum_values


class Users(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    hashed_password = Column(String(255), nullable=False)

    # native_enum=False keeps the column a VARCHAR on every backend
    role = Column(SQLAlchemyEnum(UserRole, native_enum=False, length=16, values_callable=enum_values),
                  default=UserRole.STUDENT, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    achievements = relationship("Achievement", back_populates="owner", passive_deletes=True)


# Registers the Achievement mapper that Users.achievements refers to
from achievement_portal.models import achievement  # noqa: E402,F401
