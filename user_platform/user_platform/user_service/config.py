"""
Configuration management for the User Service
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """User Service configuration loaded from environment variables"""

    # Server Configuration
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "/app/logs"
    BASE_URL: str = "http://localhost:8000"

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./users.db"

    # JWT Configuration
    JWT_SECRET: str = "change-this-secret-in-prod"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 20
    REFRESH_TOKEN_EXPIRE_DAYS: int = 365

    # Password reset links stay valid this long
    RESET_TOKEN_EXPIRE_MINUTES: int = 10

    # Mail Configuration ("console" logs mails instead of sending them)
    MAIL_BACKEND: str = "console"
    MAIL_FROM: str = "noreply@localhost"
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 587
    SMTP_USERNAME: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_TIMEOUT_SECONDS: int = 10

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )


# Global settings instance
settings = Settings()
