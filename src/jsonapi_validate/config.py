from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Validation defaults loaded from environment variables with JSONAPI_ prefix."""

    # Query parameters
    max_page_size: int = 100
    # Headers
    content_type_required: bool = True
    default_version: str = "1.1"
    # FastAPI integration
    resource_id_param: str = "id"

    model_config = SettingsConfigDict(env_prefix="JSONAPI_", env_file=".env")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
