from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response
import structlog

from achievement_portal.config import Settings, get_settings
from achievement_portal.exceptions import AppError, UnauthenticatedError, ValidationError, errors_from_pydantic
from achievement_portal.infrastructure.blob_store import BlobStore, LocalBlobStore
from achievement_portal.infrastructure.custom_static_files import CertificateStaticFiles
from achievement_portal.infrastructure.database.connection import Database
from achievement_portal.infrastructure.logger import setup_logging
from achievement_portal.middlewares.context_middleware import RequestContextMiddleware
from achievement_portal.routers.api.achievements import router as api_achievements_router
from achievement_portal.routers.api.auth import router as api_auth_router

logger = structlog.get_logger()


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None,
               blob_store: Optional[BlobStore] = None) -> FastAPI:
    settings = settings or get_settings()
    settings.validate()

    setup_logging(json_logs=settings.log_json, log_level=settings.log_level, log_file=settings.log_file,
                  backup_days=settings.log_backup_days)

    database = database or Database(settings.get_database_url(), echo=settings.db_echo)
    blob_store = blob_store or LocalBlobStore(settings.upload_dir, settings.upload_url_prefix)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.db_auto_create:
            await database.create_all()
        logger.info("Application started", database=database.engine.url.render_as_string(hide_password=True))
        yield
        await database.dispose()

    app = FastAPI(title="Achievement Portal", lifespan=lifespan)
    app.state.settings = settings
    app.state.db = database
    app.state.blob_store = blob_store

    # --- MIDDLEWARE ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    # --- ERRORS ---
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("Request failed", error=exc.message, error_type=type(exc).__name__)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        error = ValidationError(errors=errors_from_pydantic(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"message": "Server error"})

    # --- ROUTERS ---
    app.include_router(api_auth_router)
    app.include_router(api_achievements_router)

    @app.get('/api/health', name='api.health')
    async def health():
        return {"status": "ok"}

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    # --- CERTIFICATES ---
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount(settings.upload_url_prefix, CertificateStaticFiles(directory=settings.upload_dir), name="uploads")

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
