"""Application configuration using Pydantic Settings."""
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.domain.types import DefinitionPolicy, MergeStrategy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    env: str = "development"
    log_level: str = "INFO"
    log_json: bool = False
    api_host: str = "0.0.0.0"
    api_port: int = 3005

    # Database
    database_url: str = "sqlite:///./workflow_core.db"

    # Definition service
    workflow_definition_service_url: str = "http://localhost:3004"
    definition_timeout_seconds: float = 5.0
    definition_transport_retries: int = 1

    # Engine policies
    workflow_definition_policy: DefinitionPolicy = DefinitionPolicy.LATEST
    workflow_context_merge_strategy: MergeStrategy = MergeStrategy.SHALLOW
    concurrency_max_attempts: int = 5

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


# Global settings instance
settings = Settings()
