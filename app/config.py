"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    debug: bool = False

    # Access gate (HTTP Basic, password only)
    auth_enabled: bool = True
    admin_password: str = "change-me"

    # Database
    database_url: str = "sqlite+aiosqlite:///./storage/cupomhub.db"

    # Amazon Product Advertising API
    amz_region: str = "us-east-1"  # Brazil signs against us-east-1
    amz_endpoint: str = "webservices.amazon.com.br"
    amz_marketplace: str = "www.amazon.com.br"
    amz_associate_tag: str = ""
    amz_access_key_id: str = ""
    amz_secret_access_key: str = ""
    amz_timeout: float = 10.0

    # Public listing
    coupons_default_keywords: str = "Nike OR Adidas OR iPhone OR Insider"
    listing_include_external: bool = False

    # CLI clients
    api_base_url: str = "http://localhost:8000"

    # Paths
    @property
    def base_dir(self) -> Path:
        return Path(__file__).parent.parent

    @property
    def storage_dir(self) -> Path:
        return self.base_dir / "storage"

    @property
    def templates_dir(self) -> Path:
        return self.base_dir / "app" / "templates"

    @property
    def static_dir(self) -> Path:
        return self.base_dir / "app" / "static"

    @property
    def usage_store_path(self) -> Path:
        return self.storage_dir / "coupon-uses.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
