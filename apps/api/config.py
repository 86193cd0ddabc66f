"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./boda_suite.db"
    AUTO_CREATE_DB_SCHEMA: bool = True

    # Redis (optional, only used for auth rate limiting)
    REDIS_URL: str = ""

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 3002
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:3001"]

    # Security
    JWT_SECRET: str = "boda-suite-secret-key-2024"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24
    BCRYPT_ROUNDS: int = 10
    AUTH_RATE_LIMIT_PER_MINUTE: int = 20

    # Default admin account created on startup
    SEED_ADMIN_EMAIL: str = "admin@bodasuite.com"
    SEED_ADMIN_PASSWORD: str = "admin123"

    # Files
    UPLOAD_DIR: str = "./uploads"
    MAX_COVER_IMAGE_BYTES: int = 5 * 1024 * 1024
    RECEIPTS_DIR: str = "./recibos"
    FRONTEND_DIST_DIR: str = "./dist"

    # Audit trail
    AUDIT_LOG_LIMIT: int = 500

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.strip().lower() == "production"


settings = Settings()


def validate_security_settings(app_settings: Settings = settings) -> None:
    """Fail fast when the default signing secret is still configured in production."""
    if not app_settings.is_production:
        return
    insecure_values = {
        "",
        "boda-suite-secret-key-2024",
        "change_me_in_production",
    }
    jwt_secret = (app_settings.JWT_SECRET or "").strip()
    if jwt_secret in insecure_values or len(jwt_secret) < 24:
        raise ValueError("JWT_SECRET is insecure. Configure a strong non-default secret (>=24 chars).")
