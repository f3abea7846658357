import logging
import os
from dataclasses import dataclass
from decimal import Decimal

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env


@dataclass(frozen=True)
class Settings:
    database_url: str
    first_tracked_year: int
    max_payment_amount: Decimal
    log_level: str


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./payment_tracker.db"),
        first_tracked_year=int(os.getenv("FIRST_TRACKED_YEAR", "2025")),
        max_payment_amount=Decimal(os.getenv("MAX_PAYMENT_AMOUNT", "1000000")),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
