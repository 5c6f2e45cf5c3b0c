from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve .env from the project root so it loads regardless of cwd
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=(str(_ENV_FILE), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (postgresql://... in production, sqlite:///... for local runs)
    database_url: str = "sqlite:///./clinic.db"
    database_ssl: bool = False
    database_pool_size: int = 5
    database_max_overflow: int = 10
    # Prefer Alembic; this only helps local SQLite setups
    create_tables_on_startup: bool = False

    # JWT for admin endpoints
    secret_key: str
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"

    # Single admin account; hash is a passlib bcrypt hash
    admin_email: str = ""
    admin_password_hash: str = ""

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Reports
    report_months: int = 6
    upcoming_days: int = 7
    upcoming_limit: int = 10

    # Server (used by the clinic-booking console script)
    host: str = "127.0.0.1"
    port: int = 8000

    # Env
    env: str = "development"
    site_name: str = "Clinic Scheduling"

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def admin_enabled(self) -> bool:
        return bool(self.admin_email and self.admin_password_hash)


settings = Settings()
