import os
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


def _as_bool(value, default: bool = False) -> bool:
    if value is None:
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


class Settings:
    def __init__(self, **overrides):
        self.db_driver = os.getenv("DB_DRIVER", "sqlite").lower()
        self.db_username = os.getenv("DB_USERNAME", "user")
        self.db_password = os.getenv("DB_PASSWORD", "password")
        self.db_host = os.getenv("DB_HOST", "localhost")
        self.db_port = os.getenv("DB_PORT", "5432")
        self.db_name = os.getenv("DB_NAME", "achievements.db")
        self.database_url = os.getenv("DATABASE_URL") or None
        self.db_echo = _as_bool(os.getenv("DB_ECHO"))
        self.db_auto_create = _as_bool(os.getenv("DB_AUTO_CREATE"))

        self.jwt_secret_key = os.getenv("JWT_SECRET_KEY")
        self.jwt_algorithm = os.getenv("JWT_ALGORITHM", "HS256")
        self.access_token_expire_days = int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "7"))

        self.upload_dir = os.getenv("UPLOAD_DIR", "uploads")
        self.upload_url_prefix = os.getenv("UPLOAD_URL_PREFIX", "/uploads")
        self.max_upload_bytes = int(os.getenv("MAX_UPLOAD_BYTES", str(5 * 1024 * 1024)))

        self.cors_origins = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "http://localhost:8000").split(",")
            if origin.strip()
        ]

        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.log_json = _as_bool(os.getenv("LOG_JSON"))
        self.log_file = os.getenv("LOG_FILE", "app.log") or None
        self.log_backup_days = int(os.getenv("LOG_BACKUP_DAYS", "30"))

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown setting: {key}")
            setattr(self, key, value)

    def get_database_url(self) -> str:
        if self.database_url:
            return self.database_url

        if self.db_driver == "postgres":
            return (f"postgresql+asyncpg://{self.db_username}:{self.db_password}"
                    f"@{self.db_host}:{self.db_port}/{self.db_name}")
        elif self.db_driver == "sqlite":
            return f"sqlite+aiosqlite:///{self.db_name}"

        raise ValueError(f"Database driver not supported: {self.db_driver}")

    def validate(self):
        if not self.jwt_secret_key:
            raise ValueError("CRITICAL SECURITY ERROR: JWT_SECRET_KEY is not set in environment variables!")


@lru_cache
def get_settings() -> Settings:
    return Settings()
