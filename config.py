"""
Application settings, loaded from the environment (and `.env` when present).
"""
import json
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the store backend"""

    API_TITLE: str = "BRAMANDA Backend API"
    API_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 5000
    LOG_LEVEL: str = "INFO"

    # Durable store
    DATABASE_URL: str = "mongodb://localhost:27017"
    DATABASE_NAME: str = "bramanda"
    MONGO_TIMEOUT_MS: int = 2000

    SEED_SAMPLE_PRODUCTS: bool = True

    # Comma-separated or JSON array
    ALLOWED_ORIGINS: str = "https://bramandaofficial.github.io,http://localhost:3000"

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    def get_allowed_origins(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list"""
        if not self.ALLOWED_ORIGINS:
            return ["http://localhost:3000"]

        try:
            origins = json.loads(self.ALLOWED_ORIGINS)
            if isinstance(origins, list):
                return origins
        except (json.JSONDecodeError, ValueError):
            pass

        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]


def get_settings() -> Settings:
    return Settings()
