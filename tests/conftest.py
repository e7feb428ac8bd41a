import pytest
from httpx import ASGITransport, AsyncClient

from achievement_portal.config import Settings
from achievement_portal.infrastructure.blob_store import LocalBlobStore
from achievement_portal.infrastructure.database.connection import Database
from achievement_portal.models.enums import UserRole
from achievement_portal.repositories.user_repository import UserRepository
from achievement_portal.services.auth_service import AuthService
from main import create_app

PDF_BYTES = b"%PDF-1.4\n% test certificate\n"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        jwt_secret_key="test-secret",
        upload_dir=str(tmp_path / "uploads"),
        upload_url_prefix="/uploads",
        log_file=None,
        log_level="WARNING",
        db_auto_create=False,
        cors_origins=["http://testserver"],
    )


@pytest.fixture
async def database(settings):
    database = Database(settings.get_database_url())
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
def blob_store(settings):
    return LocalBlobStore(settings.upload_dir, settings.upload_url_prefix)


@pytest.fixture
def app(settings, database, blob_store):
    return create_app(settings, database=database, blob_store=blob_store)


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def db(database):
    async with database.session_factory() as session:
        yield session


@pytest.fixture
def make_user(database, settings):
    async def _make(email, role=UserRole.STUDENT, name="Test Student", password="secret123"):
        async with database.session_factory() as session:
            service = AuthService(UserRepository(session), settings)
            user = await service.create_user(name, email, password, role=role)
            return user, {"Authorization": f"Bearer {service.issue_token(user)}"}

    return _make


@pytest.fixture
async def student(make_user):
    return await make_user("student@example.com", name="Sam Student")


@pytest.fixture
async def other_student(make_user):
    return await make_user("other@example.com", name="Tara Other")


@pytest.fixture
async def admin(make_user):
    return await make_user("admin@example.com", role=UserRole.ADMIN, name="Ada Admin")


@pytest.fixture
def certificate():
    def _certificate(size=None, content_type="application/pdf", filename="certificate.pdf"):
        content = PDF_BYTES
        if size is not None:
            content = (PDF_BYTES + b"0" * size)[:size]
        return {"certificate": (filename, content, content_type)}

    return _certificate


@pytest.fixture
def submit(client, certificate):
    async def _submit(headers, files=None, **fields):
        data = {"title": "Science Fair", "category": "Academic", "date": "2024-03-01", **fields}
        data = {k: v for k, v in data.items() if v is not None}
        return await client.post("/api/achievements", data=data,
                                 files=certificate() if files is None else files, headers=headers)

    return _submit
