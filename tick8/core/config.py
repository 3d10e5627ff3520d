from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Base
    APP_ENV: str = "dev"  # dev | staging | prod
    APP_NAME: str = "TICK8 API"
    APP_VERSION: str = "0.1.0"

    # CORS
    CORS_ORIGINS: str = "http://localhost:4200"

    # Storage
    STORAGE_BACKEND: str = "local"  # local | s3
    STORAGE_PATH: str = "./data"
    DEFAULTS_PATH: str = ""  # jeu de cours par défaut, relatif à la racine du stockage
    S3_BUCKET: str = "tick8-user-data"
    S3_PREFIX: str = ""
    S3_REGION: Optional[str] = None
    S3_ENDPOINT_URL: Optional[str] = None

    # Cours / snapshots
    MAX_NOTE_LENGTH: int = 500
    MAX_PAGE_SIZE: int = 100
    DEFAULT_PAGE_SIZE: int = 15
    AUTO_SNAPSHOT_NOTE: str = "Auto-weekly backup"

    # Générateur IA
    OPENAI_API_KEY: Optional[str] = None
    GENERATOR_MODEL: str = "gpt-4o-mini"

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
