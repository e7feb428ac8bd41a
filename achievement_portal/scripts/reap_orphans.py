"""
Deletes certificate blobs that no achievement references any more.

Orphans appear when a cleanup after a failed commit or a delete could not
remove the file. Meant to run from cron, outside request handling:

    python -m achievement_portal.scripts.reap_orphans --grace 3600 --dry-run
"""
import argparse
import asyncio
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from achievement_portal.config import get_settings
from achievement_portal.exceptions import StorageError
from achievement_portal.infrastructure.blob_store import BlobStore, LocalBlobStore
from achievement_portal.infrastructure.database.connection import Database
from achievement_portal.infrastructure.logger import setup_logging
from achievement_portal.repositories.achievement_repository import AchievementRepository

logger = structlog.get_logger()

DEFAULT_GRACE_SECONDS = 3600


async def reap_orphans(db: AsyncSession, blobs: BlobStore, grace_seconds: float = DEFAULT_GRACE_SECONDS,
                       dry_run: bool = False) -> List[str]:
    # Keys are listed before references are read, so a blob committed in
    # between is seen as referenced rather than orphaned
    candidates = await blobs.list_keys(min_age_seconds=grace_seconds)
    referenced = await AchievementRepository(db).certificate_refs()

    orphans = [key for key in candidates if key not in referenced]

    for key in orphans:
        if dry_run:
            logger.info("Orphan found", key=key)
            continue
        try:
            await blobs.delete(key)
        except StorageError as e:
            logger.error("Orphan removal failed", key=key, error=str(e))

    logger.info("Orphan sweep finished", scanned=len(candidates), orphans=len(orphans), dry_run=dry_run)
    return orphans


async def main(grace_seconds: float, dry_run: bool):
    settings = get_settings()
    setup_logging(json_logs=settings.log_json, log_level=settings.log_level, log_file=None)

    database = Database(settings.get_database_url(), echo=settings.db_echo)
    blobs = LocalBlobStore(settings.upload_dir, settings.upload_url_prefix)
    try:
        async with database.session_factory() as db:
            await reap_orphans(db, blobs, grace_seconds=grace_seconds, dry_run=dry_run)
    finally:
        await database.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Remove unreferenced certificate files")
    parser.add_argument("--grace", type=float, default=DEFAULT_GRACE_SECONDS,
                        help="ignore files younger than this many seconds")
    parser.add_argument("--dry-run", action="store_true", help="only report orphans")
    args = parser.parse_args()
    asyncio.run(main(args.grace, args.dry_run))
