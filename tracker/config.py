import logging
import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///expenses.db"
DEFAULT_TIMEZONE = "Asia/Jakarta"
DEFAULT_SEED_PATH = "data/seed.json"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    database_url: str
    display_timezone: str
    seed_path: str
    log_level: str

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.display_timezone)


def load_settings(env_file: Optional[str] = None) -> Settings:
    """Read settings from the environment, after loading a .env file if present."""
    load_dotenv(env_file)

    display_timezone = os.getenv("DISPLAY_TIMEZONE", DEFAULT_TIMEZONE)
    # fail early on a bad zone name instead of on first render
    ZoneInfo(display_timezone)

    return Settings(
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        display_timezone=display_timezone,
        seed_path=os.getenv("SEED_PATH", DEFAULT_SEED_PATH),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    if not any(getattr(h, "_tracker", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._tracker = True
        root.addHandler(handler)
    root.setLevel(level)
