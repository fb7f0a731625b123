"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings.
Environment variables can be loaded from a .env file.

Secrets consumed by the credential store and the token issuer
(PASSWORD_PEPPER, JWT_SECRET, JWT_EXPIRY_MINUTES) are read from the
environment at call time by auth.password and auth.jwt.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings have sensible defaults for development.
    Production deployments MUST set security-critical values.

    Environment Variables:
        DATABASE_URL: SQLAlchemy connection string (PostgreSQL in production)
        OTP_EXPIRY_MINUTES: Validity window of a one-time code
        OTP_DELIVERY: "response" (dev/test, code returned to caller) or "smtp"
        MAX_UPLOAD_SIZE_BYTES: Upper bound for uploaded documents
        STORAGE_BACKEND: "local" (filesystem) or "s3"
        UPLOAD_DIR: Directory for the local blob store
        LOG_LEVEL: Logging level (default INFO)
    """

    # Database
    DATABASE_URL: str = "sqlite:///./securevault.db"
    AUTO_CREATE_TABLES: bool = False

    # One-time codes
    OTP_EXPIRY_MINUTES: int = 2
    OTP_DELIVERY: str = "response"
    OTP_EMAIL_FROM: str = "no-reply@securevault.example.com"

    # SMTP (OTP delivery channel)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 25
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = False

    # Documents
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024  # 10 MB

    # Blob storage
    STORAGE_BACKEND: str = "local"
    UPLOAD_DIR: str = "./uploads"
    S3_ENDPOINT_URL: Optional[str] = None
    S3_ACCESS_KEY_ID: str = "minioadmin"
    S3_SECRET_ACCESS_KEY: str = "minioadmin"
    S3_BUCKET_NAME: str = "securevault-documents"
    S3_REGION: str = "us-east-1"

    # Application
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    CORS_ORIGINS: str = "http://localhost:3000"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache for singleton behavior.
    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
