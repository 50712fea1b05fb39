# laundrypos/config.py
# Settings come from the environment (optionally a .env file next to the app)
import logging
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

GRACE_DAYS = 3
MONTHLY_DAYS = 30
YEARLY_DAYS = 365
POINT_UNIT_IDR = 10_000

# renewal prices in IDR, keyed by package kind
PACKAGE_PRICE = {"monthly": 50_000, "yearly": 500_000}
PACKAGE_LABEL = {"monthly": "Bulanan (30 hari)", "yearly": "Tahunan (365 hari)"}


class Settings(BaseSettings):
    """Runtime settings; every field maps to the upper-case environment variable of the same name."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    database_url: str = "sqlite:///./laundrypos.db"
    admin_token: Optional[str] = None

    # WhatsApp gateway; notices are skipped unless all three are set
    wa_api_url: Optional[str] = None
    wa_api_key: Optional[str] = None
    owner_email: Optional[str] = None
    wa_timeout: float = 8.0

    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
