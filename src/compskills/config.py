"""Configuration management for the complementary skills calculator using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="COMPSKILLS_",
        extra="ignore",
    )

    # Skill rules
    leadership_skill_name: str = Field(
        default="Leadership",
        description="Base skill name whose total ranks count as leadership",
    )
    tie_break: Literal["label", "insertion"] = Field(
        default="label",
        description="Ordering of equal-rank complementary contributions",
    )
    allow_ineligible_complements: bool = Field(
        default=False,
        description="Allow skills marked non-rollable to be used as complementary contributions",
    )

    # Messaging
    owner_level: int = Field(
        default=3, description="Minimum ownership level that counts as an owner"
    )
    chat_flag_scope: str = Field(
        default="compskills", description="Namespace for metadata attached to result messages"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format (console or json)")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
