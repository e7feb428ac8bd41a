from enum import Enum


class UserRole(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"


class AchievementStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class AchievementCategory(str, Enum):
    ACADEMIC = "Academic"
    SPORTS = "Sports"
    EXTRACURRICULAR = "Extracurricular"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def status(self) -> AchievementStatus:
        if self is ReviewAction.APPROVE:
            return AchievementStatus.APPROVED
        return AchievementStatus.REJECTED


def enum_values(enum_cls):
    return [member.value for member in enum_cls]
