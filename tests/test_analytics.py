from datetime import date, datetime, timezone

from achievement_portal.models.enums import AchievementCategory, AchievementStatus
from achievement_portal.repositories.achievement_repository import AchievementRepository


async def _insert(db, owner_id, category, status, created_at):
    return await AchievementRepository(db).create({
        "owner_id": owner_id,
        "title": "Item",
        "description": "",
        "date": date(2024, 1, 1),
        "category": category,
        "status": status,
        "reviewer_comment": "",
        "certificate_ref": "0" * 32 + ".pdf",
        "created_at": created_at,
    })


async def test_analytics_groups_by_category_status_and_month(client, db, student, admin):
    user, _ = student
    _, admin_headers = admin
    for month in (1, 1, 3):
        await _insert(db, user.id, AchievementCategory.ACADEMIC, AchievementStatus.PENDING,
                      datetime(2024, month, 15, tzinfo=timezone.utc))
    for year, month in ((2023, 12), (2024, 3)):
        await _insert(db, user.id, AchievementCategory.SPORTS, AchievementStatus.APPROVED,
                      datetime(year, month, 2, tzinfo=timezone.utc))

    response = await client.get("/api/achievements/stats/analytics", headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["by_category"] == [{"category": "Academic", "count": 3}, {"category": "Sports", "count": 2}]
    assert body["by_status"] == [{"status": "Pending", "count": 3}, {"status": "Approved", "count": 2}]
    assert body["by_month"] == [
        {"month": "2023-12", "count": 1},
        {"month": "2024-01", "count": 2},
        {"month": "2024-03", "count": 2},
    ]


async def test_analytics_on_empty_set(client, admin):
    _, admin_headers = admin

    response = await client.get("/api/achievements/stats/analytics", headers=admin_headers)

    assert response.json() == {"by_category": [], "by_status": [], "by_month": []}
