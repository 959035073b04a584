"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Annotated, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    # App
    app_name: str = "PageSpeed Watch"
    app_env: str = "production"
    log_level: str = "INFO"

    # Shared secrets
    webhook_secret: str = ""
    secure_key: str = ""

    # Platform headers
    deployment_header: str = "x-vercel-deployment-id"
    signature_header: str = "x-vercel-signature"

    # PageSpeed Insights
    psi_api_key: str = ""
    psi_endpoint: str = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
    psi_strategy: str = "mobile"
    psi_timeout_seconds: Optional[float] = None  # None = wait indefinitely

    # Database
    turso_url: str = ""
    turso_auth_token: str = ""
    database_url: str = "sqlite:///./pagespeed.db"
    create_tables: bool = True

    @field_validator("database_url", mode="before")
    @classmethod
    def fix_db_url(cls, v: str) -> str:
        if v.startswith("libsql://"):
            return v.replace("libsql://", "sqlite+libsql://", 1)
        return v

    # In-process schedule
    scheduled_urls: Annotated[list[str], NoDecode] = []
    schedule_interval_hours: int = 6

    @field_validator("scheduled_urls", mode="before")
    @classmethod
    def split_urls(cls, v):
        if isinstance(v, str):
            return [u.strip() for u in v.split(",") if u.strip()]
        return v

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def sqlalchemy_url(self) -> str:
        """Turso takes precedence over DATABASE_URL when configured."""
        if not self.turso_url:
            return self.database_url
        host = self.turso_url.split("://", 1)[-1].rstrip("/")
        url = f"sqlite+libsql://{host}/?secure=true"
        if self.turso_auth_token:
            url += f"&authToken={self.turso_auth_token}"
        return url


@lru_cache
def get_settings() -> Settings:
    return Settings()
