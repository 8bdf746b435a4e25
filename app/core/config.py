from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    environment: str = Field("development", alias="ENVIRONMENT")
    log_dir: Optional[str] = Field(None, alias="LOG_DIR")

    # Used when a school row carries no timezone of its own.
    default_timezone: str = Field("UTC", alias="DEFAULT_TIMEZONE")
    # Isolation level for timetable writes (check-then-insert must not interleave).
    write_isolation_level: str = Field("SERIALIZABLE", alias="WRITE_ISOLATION_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
