import logging
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from tracker.config import DEFAULT_DATABASE_URL, configure_logging, load_settings
from tracker.seed import load_seed

SEED = Path(__file__).resolve().parent.parent / "data" / "seed.json"


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "DISPLAY_TIMEZONE", "SEED_PATH", "LOG_LEVEL"):
        # set first so the undo also removes values loaded from .env files
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    return monkeypatch


def test_defaults(clean_env, tmp_path):
    settings = load_settings(str(tmp_path / "missing.env"))
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.tz == ZoneInfo("Asia/Jakarta")
    assert settings.log_level == "INFO"


def test_env_file_is_read(clean_env, tmp_path):
    env = tmp_path / ".env"
    env.write_text("DISPLAY_TIMEZONE=Europe/Berlin\nLOG_LEVEL=debug\nDATABASE_URL=sqlite+aiosqlite:///x.db\n")
    settings = load_settings(str(env))
    assert settings.display_timezone == "Europe/Berlin"
    assert settings.log_level == "DEBUG"
    assert settings.database_url == "sqlite+aiosqlite:///x.db"


def test_bad_timezone_fails_early(clean_env, tmp_path):
    clean_env.setenv("DISPLAY_TIMEZONE", "Nowhere/Atlantis")
    with pytest.raises(ZoneInfoNotFoundError):
        load_settings(str(tmp_path / "missing.env"))


def test_configure_logging_installs_one_handler():
    root = logging.getLogger()
    configure_logging("WARNING")
    configure_logging("DEBUG")
    ours = [h for h in root.handlers if getattr(h, "_tracker", False)]
    assert len(ours) == 1
    assert root.level == logging.DEBUG


def test_load_seed():
    seed = load_seed(str(SEED))
    assert len(seed.categories) >= 5
    assert len(seed.cashless_types) >= 3
    assert all(c.is_active for c in seed.categories)
    assert seed.users[0][0] == "demo@example.com"
