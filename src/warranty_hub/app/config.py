"""WarrantyHub settings, read from the environment and the repository .env file."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

from warranty_hub.domain.enums import AppMode

# Resolve .env from the repository root regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"

NHTSA_DECODE_URL = "https://vpic.nhtsa.dot.gov/api/vehicles/DecodeVinValuesExtended"


class Settings(BaseSettings):
    """Runtime configuration. Environment variables override .env values."""

    # Persistence backend: "local" key-value store or "hosted" relational database
    app_mode: AppMode = AppMode.LOCAL
    database_url: str = "sqlite+aiosqlite:///./warranty_hub.db"
    local_store_path: str = "./warranty_hub_store.json"

    # VIN decoding
    vin_decode_base_url: str = NHTSA_DECODE_URL
    vin_decode_timeout_seconds: float = 10.0

    # Remittances
    remittance_tax_rate: float = 0.13

    # Auth / JWT
    jwt_secret_key: str = "change-me-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440

    # CORS / Frontend
    cors_origins: str = "http://localhost:5173"

    # General
    debug: bool = True

    model_config = {"env_file": str(_ENV_FILE), "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin.
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_hosted(self) -> bool:
        return self.app_mode == AppMode.HOSTED


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
