"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Catalog
    debug: bool = False
    default_currency: str = "USD"

    # Database
    database_url: str = "postgresql+asyncpg://catalog:catalog_dev_password@db:5432/catalog"

    # Assets
    asset_storage_path: str = "./var/assets"
    max_image_bytes: int = 10 * 1024 * 1024

    # Overrides
    order_cancellation_window_hours: int | None = None

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
