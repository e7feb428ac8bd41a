from collections import Counter

from achievement_portal.repositories.achievement_repository import AchievementRepository


class AnalyticsService:
    def __init__(self, repo: AchievementRepository):
        self.repo = repo

    async def by_category(self):
        rows = await self.repo.count_by('category')
        return [{"category": category, "count": count} for category, count in rows]

    async def by_status(self):
        rows = await self.repo.count_by('status')
        return [{"status": status, "count": count} for status, count in rows]

    async def by_month(self):
        """
        Counts per ``YYYY-MM`` of ``created_at``, oldest month first.
        Bucketing happens here rather than in SQL so it behaves the same on
        SQLite and PostgreSQL.
        """
        counts = Counter(
            created_at.strftime("%Y-%m")
            for created_at in await self.repo.created_at_values()
            if created_at is not None
        )
        return [{"month": month, "count": counts[month]} for month in sorted(counts)]

    async def summary(self):
        return {
            "by_category": await self.by_category(),
            "by_status": await self.by_status(),
            "by_month": await self.by_month(),
        }
