from __future__ import annotations

from dotenv import find_dotenv, load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from classroom_membership.constants import (
    DEFAULT_CLASSROOM_NAME_MAX_LENGTH,
    DEFAULT_CLASSROOM_NAME_MIN_LENGTH,
)
from classroom_membership.enums import Environment

# Load .env file from repository root, regardless of current working directory
load_dotenv(find_dotenv(".env"))


class Settings(BaseSettings):
    """
    Configuration settings for the classroom membership core.

    These settings can be overridden via environment variables prefixed with
    CLASSROOM_MEMBERSHIP_.
    """

    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    SERVICE_NAME: str = "classroom_membership"

    # Classroom name rules
    CLASSROOM_NAME_MIN_LENGTH: int = Field(
        default=DEFAULT_CLASSROOM_NAME_MIN_LENGTH, ge=1, description="Minimum cleaned name length"
    )
    CLASSROOM_NAME_MAX_LENGTH: int = Field(
        default=DEFAULT_CLASSROOM_NAME_MAX_LENGTH, ge=1, description="Maximum cleaned name length"
    )

    # Pagination
    DEFAULT_PAGE_SIZE: int = Field(default=30, ge=1, description="Classrooms per page")

    # Fan-out reads
    FANOUT_CONCURRENCY_LIMIT: int = Field(
        default=0,
        ge=0,
        description="Maximum concurrent classroom reads per fan-out, 0 for unbounded",
    )

    # Join passwords
    PASSWORD_GENERATION_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="Fresh tokens tried before giving up when a generated password is taken",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_prefix="CLASSROOM_MEMBERSHIP_",
    )


settings = Settings()
