"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./campusconnect.db"
    CORS_ORIGINS: str = "http://localhost:3000"

    OPENAI_API_KEY: str = ""
    OPENAI_MODEL: str = "gpt-4o-mini"

    JWT_SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 12
    BCRYPT_ROUNDS: int = 12

    # First SSG admin, created on startup when both are set
    BOOTSTRAP_ADMIN_EMAIL: str = ""
    BOOTSTRAP_ADMIN_PASSWORD: str = ""
    BOOTSTRAP_ADMIN_NAME: str = "SSG Administrator"

    # Year component of unified clearance IDs is taken in this zone
    CAMPUS_TIMEZONE: str = "Asia/Manila"

    CLEARANCE_UPDATE_MAX_ATTEMPTS: int = 5
    CLEARANCE_RETRY_BACKOFF_SECONDS: float = 0.05

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "readable"  # readable | json

    class Config:
        env_file = ".env"


settings = Settings()
