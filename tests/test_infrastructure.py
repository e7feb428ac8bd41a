import gzip
import logging
import os
from logging.handlers import TimedRotatingFileHandler

import pytest

from achievement_portal.exceptions import StorageError
from achievement_portal.infrastructure.jwt_handler import TokenError, create_access_token, decode_access_token
from achievement_portal.infrastructure.logger import build_file_handler, file_sha256, gzip_rotator, setup_logging
from achievement_portal.middlewares import context_middleware
from achievement_portal.models.enums import UserRole
from achievement_portal.scripts.reap_orphans import reap_orphans
from achievement_portal.seeders import users_table_seeder


async def test_blob_store_keys_are_generated_and_typed(blob_store):
    pdf = await blob_store.put(b"%PDF", "application/pdf")
    jpeg = await blob_store.put(b"\xff\xd8", "image/jpg")

    assert pdf.endswith(".pdf")
    assert jpeg.endswith(".jpg")
    assert pdf != jpeg
    assert sorted(await blob_store.list_keys()) == sorted([pdf, jpeg])
    assert blob_store.url_for(pdf) == f"/uploads/{pdf}"


async def test_blob_store_delete_is_idempotent(blob_store):
    key = await blob_store.put(b"%PDF", "application/pdf")

    await blob_store.delete(key)
    await blob_store.delete(key)

    assert not await blob_store.exists(key)


async def test_blob_store_refuses_path_like_keys(blob_store):
    with pytest.raises(StorageError):
        await blob_store.delete("../main.py")

    assert not await blob_store.exists("../main.py")


async def test_blob_store_grace_period(blob_store):
    await blob_store.put(b"%PDF", "application/pdf")

    assert await blob_store.list_keys(min_age_seconds=3600) == []


def test_token_round_trip(settings):
    token = create_access_token({"sub": "7", "role": "admin"}, settings)

    claims = decode_access_token(token, settings)

    assert claims["sub"] == "7"
    assert claims["role"] == "admin"
    assert "exp" in claims


def test_token_without_subject_is_rejected(settings):
    token = create_access_token({"role": "admin"}, settings)

    with pytest.raises(TokenError):
        decode_access_token(token, settings)


async def test_reaper_removes_only_unreferenced_blobs(db, student, submit, blob_store):
    _, headers = student
    kept = (await submit(headers)).json()["certificate_ref"]
    orphan = await blob_store.put(b"%PDF orphan", "application/pdf")

    dry = await reap_orphans(db, blob_store, grace_seconds=0, dry_run=True)
    assert dry == [orphan]
    assert await blob_store.exists(orphan)

    removed = await reap_orphans(db, blob_store, grace_seconds=0)

    assert removed == [orphan]
    assert not await blob_store.exists(orphan)
    assert await blob_store.exists(kept)


async def test_admin_seeder_is_idempotent(db, settings):
    data = {"email": "root@example.com", "name": "Root", "password": "secret123"}

    admin = await users_table_seeder.run(db, settings, data)
    again = await users_table_seeder.run(db, settings, data)

    assert admin.role == UserRole.ADMIN
    assert again is None


def test_log_rotation_compresses_and_fingerprints(tmp_path):
    source = tmp_path / "app.log"
    source.write_text("line one\nline two\n")
    dest = str(tmp_path / "app.log.2024-01-01")

    gzip_rotator(str(source), dest)

    assert not source.exists()
    with gzip.open(dest + ".gz", "rt") as f:
        assert f.read() == "line one\nline two\n"
    with open(dest + ".gz.sha256") as f:
        assert f.read() == file_sha256(dest + ".gz")
    assert os.path.getsize(dest + ".gz") > 0


async def test_health_and_request_id(client):
    response = await client.get("/api/health", headers={"X-Request-ID": "abc123"})

    assert response.json() == {"status": "ok"}
    assert response.headers["x-request-id"] == "abc123"


class RecordingLogger:
    def __init__(self):
        self.events = []

    def info(self, event, **kw):
        self.events.append((event, kw))

    def exception(self, event, **kw):
        self.events.append((event, kw))


async def test_request_log_line_carries_authenticated_user(client, student, monkeypatch):
    user, headers = student
    recorder = RecordingLogger()
    monkeypatch.setattr(context_middleware, "logger", recorder)

    await client.get("/api/achievements/me", headers=headers)
    await client.get("/api/health")

    (_, authed), (_, anonymous) = [e for e in recorder.events if e[0] == "Request handled"]
    assert authed["user_id"] == user.id
    assert authed["status_code"] == 200
    assert anonymous["user_id"] is None


def test_file_handler_rotates_into_fingerprinted_archives(tmp_path):
    handler = build_file_handler(str(tmp_path / "app.log"), backup_days=7)

    assert handler.backupCount == 7
    assert handler.when == "MIDNIGHT"
    assert handler.rotator is gzip_rotator
    assert handler.namer("app.log.2024-01-01") == "app.log.2024-01-01"
    handler.close()


def test_setup_logging_mutes_uvicorn_access_log(tmp_path):
    setup_logging(log_level="warning", log_file=str(tmp_path / "app.log"), backup_days=3)

    root = logging.getLogger()
    file_handlers = [h for h in root.handlers if isinstance(h, TimedRotatingFileHandler)]
    assert len(file_handlers) == 1
    assert file_handlers[0].backupCount == 3
    assert root.level == logging.WARNING
    assert logging.getLogger("uvicorn.access").disabled
    assert logging.getLogger("uvicorn.error").propagate
