import pytest
from loguru import logger

from app.utils.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during the test."""
    messages: list[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def make_settings(tmp_path):
    """Settings pointed at ``tmp_path`` with no settle delay."""

    def _make(**overrides) -> Settings:
        values = {
            "watch_dir": tmp_path,
            "settle_delay": 0,
            "log_file": tmp_path / "logs" / "tagger.log",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make
