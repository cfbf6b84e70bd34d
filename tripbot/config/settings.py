from functools import lru_cache
from typing import Dict

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Bot settings
    bot_token: str = Field(default="", alias="BOT_TOKEN")

    # Database settings
    db_host: str = Field(default="localhost", alias="DB_HOST")
    db_port: int = Field(default=5432, alias="DB_PORT")
    db_name: str = Field(default="tripbot", alias="DB_NAME")
    db_user: str = Field(default="postgres", alias="DB_USER")
    db_password: str = Field(default="", alias="DB_PASSWORD")

    # Redis settings (optional)
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_db: int = Field(default=0, alias="REDIS_DB")

    # Application settings
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Ledger settings
    base_currency: str = Field(default="TWD", alias="BASE_CURRENCY")
    default_rates: str = Field(default="TWD:1,EUR:35.1", alias="DEFAULT_RATES")
    rate_api_url: str = Field(
        default="https://open.er-api.com/v6/latest/{base}",
        alias="RATE_API_URL"
    )
    rate_precision: int = Field(default=4, alias="RATE_PRECISION")

    # Shared trip document store: "sql" or "memory"
    store_backend: str = Field(default="sql", alias="STORE_BACKEND")
    store_poll_interval: float = Field(default=5.0, alias="STORE_POLL_INTERVAL")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def redis_url(self) -> str:
        """Construct Redis URL."""
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def default_rate_table(self) -> Dict[str, str]:
        """Parse DEFAULT_RATES ("CODE:multiplier,...") into a mapping."""
        rates = {}
        for pair in self.default_rates.split(","):
            code, _, multiplier = pair.partition(":")
            if code.strip() and multiplier.strip():
                rates[code.strip().upper()] = multiplier.strip()
        return rates


@lru_cache
def get_settings() -> Settings:
    """Settings instance, read from the environment on first use."""
    return Settings()
