"""
Application configuration settings
"""
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # API Configuration
    API_PREFIX: str = "/api"
    PROJECT_NAME: str = "Peminjaman Barang"
    VERSION: str = "1.0.0"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Database
    DATABASE_URL: str = "sqlite:///./peminjaman.db"

    # Loan workflow
    DEFAULT_CONFIRMATION_METHOD: str = "whatsapp"
    REJECTED_PURGE_DELAY_SECONDS: float = 5.0
    SWEEPER_INTERVAL_SECONDS: float = 5.0
    SWEEPER_ENABLED: bool = True

    # Pagination
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False


settings = Settings()
