"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./portfolio.db"
    AUTO_CREATE_DB_SCHEMA: bool = True

    # Redis
    REDIS_URL: str = "redis://localhost:6379"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]
    PUBLIC_APP_URL: str = "http://localhost:3000"

    # Owner login
    LOGIN_USERNAME: str = "admin"
    LOGIN_PASSWORD: str = ""
    OWNER_EMAIL: str = "admin@local.dev"
    OWNER_NAME: str = "Admin User"

    # Security
    JWT_SECRET: str = "change_me_in_production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24 * 30
    ALLOW_INSECURE_DEFAULTS: bool = False

    # Share links
    SHARE_CODE_MAX_ATTEMPTS: int = 10

    # Rate limiting (public writes)
    RATE_LIMIT_BACKEND: str = "memory"  # memory | redis
    RATE_LIMIT_SWEEP_INTERVAL_SECONDS: int = 300
    # Peers allowed to name the client in X-Forwarded-For / X-Real-IP.
    TRUSTED_PROXIES: List[str] = []
    FEEDBACK_RATE_LIMIT: int = 5
    FEEDBACK_RATE_WINDOW_SECONDS: int = 60
    TASK_RATE_LIMIT: int = 3
    TASK_RATE_WINDOW_SECONDS: int = 60

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def validate_security_settings() -> None:
    """Fail fast when insecure default secrets are still configured."""
    if settings.ALLOW_INSECURE_DEFAULTS:
        return

    insecure_values = {
        "",
        "change_me_in_production",
        "your_jwt_secret_change_in_production",
    }
    jwt_secret = (settings.JWT_SECRET or "").strip()
    login_password = (settings.LOGIN_PASSWORD or "").strip()

    if jwt_secret in insecure_values or len(jwt_secret) < 24:
        raise ValueError("JWT_SECRET is insecure. Configure a strong non-default secret (>=24 chars).")
    if len(login_password) < 8:
        raise ValueError("LOGIN_PASSWORD is not configured. Set an owner password (>=8 chars).")
