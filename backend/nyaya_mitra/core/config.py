# nyaya_mitra/core/config.py
"""
Application configuration using Pydantic Settings
"""
from pathlib import Path
from typing import List
import json

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables
    """

    # Application
    APP_NAME: str = "Nyaya Mitra"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development | test | production
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./data/nyaya_mitra.db"

    # JWT Authentication
    JWT_SECRET_KEY: str
    JWT_REFRESH_SECRET_KEY: str
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 15
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    REMEMBER_ME_ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    REMEMBER_ME_REFRESH_TOKEN_EXPIRE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 12

    # CORS
    CLIENT_URL: str = "http://localhost:3000"
    CORS_ORIGINS: str = ""

    # Uploads
    UPLOAD_DIR: str = "./public/uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024  # 10 MiB

    # Document analysis
    ANALYSIS_DELAY_SECONDS: float = 2.0
    ANALYSIS_MAX_WORKERS: int = 4

    # Rate limiting (limits notation, per client IP)
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100 per 15 minutes"
    RATE_LIMIT_AUTH: str = "5 per 15 minutes"

    @field_validator("ENVIRONMENT", "LOG_LEVEL", mode="before")
    @classmethod
    def strip_values(cls, v):
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("BCRYPT_ROUNDS")
    @classmethod
    def check_bcrypt_rounds(cls, v: int) -> int:
        if not 4 <= v <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31")
        return v

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def cors_origins_list(self) -> List[str]:
        """
        CORS origins. CORS_ORIGINS may hold a JSON list; otherwise CLIENT_URL
        is read as a comma-separated list.
        """
        if self.CORS_ORIGINS:
            try:
                origins = json.loads(self.CORS_ORIGINS)
                if isinstance(origins, list):
                    return [str(o) for o in origins]
            except ValueError:
                pass
        return [part.strip() for part in self.CLIENT_URL.split(",") if part.strip()]

    @property
    def upload_path(self) -> Path:
        return Path(self.UPLOAD_DIR).resolve()


settings = Settings()
