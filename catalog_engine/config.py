from pydantic_settings import BaseSettings
from pydantic import field_validator
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Catalog Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # SKU Generation
    SKU_SEPARATOR: str = "-"
    SKU_ABBREVIATION_LENGTH: int = 3  # Characters kept from an option value
    SKU_MAX_SUFFIX: int = 99  # Highest disambiguation suffix before giving up

    # Precision
    CURRENCY_DECIMAL_PLACES: int = 2
    BOM_QUANTITY_DECIMAL_PLACES: int = 4  # Matches NUMERIC(12,4) columns

    # Persistence boundary retries (serialization failures / deadlocks)
    TRANSACTION_RETRY_ATTEMPTS: int = 3
    TRANSACTION_RETRY_BACKOFF_SECONDS: float = 0.05

    # Material Alert Job
    LOW_STOCK_CHECK_INTERVAL_MINUTES: int = 60
    PRODUCIBILITY_ALERT_THRESHOLD: int = 5  # Variants producible below this are reported
    SCHEDULER_TIMEZONE: str = "UTC"

    @field_validator('LOG_LEVEL', mode='before')
    @classmethod
    def normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('SKU_ABBREVIATION_LENGTH', 'SKU_MAX_SUFFIX')
    @classmethod
    def must_be_positive(cls, v):
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
