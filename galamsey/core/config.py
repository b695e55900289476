"""
GalamseyWatch - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from galamsey.core.constants import (
    DEFAULT_CONTRACT_ADDRESS,
    SCROLL_SEPOLIA_CHAIN_ID,
    SCROLL_SEPOLIA_EXPLORER_URL,
    SCROLL_SEPOLIA_NAME,
    SCROLL_SEPOLIA_RPC_URL,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./galamsey.db"

    # AI gateway (OpenAI-compatible chat completions)
    ai_gateway_url: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    ai_gateway_key: Optional[str] = None
    ai_model: str = "google/gemini-2.5-flash"
    ai_timeout_seconds: float = 30.0

    # Chain
    chain_rpc_url: str = SCROLL_SEPOLIA_RPC_URL
    chain_id: int = SCROLL_SEPOLIA_CHAIN_ID
    chain_name: str = SCROLL_SEPOLIA_NAME
    chain_explorer_url: str = SCROLL_SEPOLIA_EXPLORER_URL
    contract_address: Optional[str] = DEFAULT_CONTRACT_ADDRESS
    wallet_private_key: Optional[str] = None
    chain_receipt_timeout_seconds: float = 120.0

    # Geocoding (OpenStreetMap Nominatim)
    geocoder_url: str = "https://nominatim.openstreetmap.org"
    geocoder_timeout_seconds: float = 10.0

    # Moderators: list, read and delete any report, re-run enrichment,
    # connect and disconnect the server wallet
    admin_user_ids: List[str] = []

    # Settled submissions idle this long are dropped from memory
    submission_ttl_seconds: float = 900.0

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
