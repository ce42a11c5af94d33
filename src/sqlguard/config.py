"""
Configuration
=============

Settings loaded from ``SQLGUARD_*`` environment variables or a ``.env`` file.
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SQLGUARD_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = ""
    otlp_endpoint: str = "disabled"

    # Database
    database_path: str = "sqlguard.db"
    create_demo_db: bool = False
    db_timeout: float = 30.0

    # Generator
    llm_api_key: SecretStr | None = None
    llm_base_url: str = "https://api.openai.com/v1"
    llm_model: str = "gpt-4o-mini"
    agent_model: str = "gpt-4o"
    llm_timeout: float = 30.0

    # Governance budgets
    max_attempts: int = Field(default=4, ge=1, le=10)
    backoff_base: float = Field(default=0.5, ge=0)
    max_steps: int = Field(default=10, ge=1, le=50)
    observation_limit: int = Field(default=2000, ge=100)


@lru_cache
def get_settings() -> Settings:
    return Settings()
