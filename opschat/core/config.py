"""
Application settings.
Database secrets loaded from AWS Secrets Manager at startup unless provided via env.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # AWS
    AWS_REGION: str = "us-east-1"
    DB_SECRET_NAME: str = "ops-console/db"

    # Database (full URL wins; otherwise assembled from parts / Secrets Manager)
    DATABASE_URL: Optional[str] = None
    DB_HOST: Optional[str] = None
    DB_PORT: int = 5432
    DB_NAME: Optional[str] = None
    DB_USER: Optional[str] = None
    DB_PASS: Optional[str] = None

    # Redis (sessions are written by the identity service, read here)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    SESSION_TTL: int = 86400  # 24 hours in seconds

    # Chat
    NOTIFICATION_LIMIT: int = 10

    # Optional
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    PROJECT_NAME: str = "Ops Console Chat"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASS}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

# Load DB credentials from AWS Secrets Manager only when they aren't already
# provided via environment variables (e.g. in Docker / local dev / tests).
if not settings.DATABASE_URL and not settings.DB_HOST:
    from opschat.aws.secrets import get_secret

    _db_secret = get_secret(settings.DB_SECRET_NAME, region_name=settings.AWS_REGION)
    settings.DB_HOST = _db_secret["host"]
    settings.DB_PORT = int(_db_secret.get("port", 5432))
    settings.DB_NAME = _db_secret["database"]
    settings.DB_USER = _db_secret["username"]
    settings.DB_PASS = _db_secret["password"]
