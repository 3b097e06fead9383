"""Root test configuration."""

import logging
from pathlib import Path

import pytest
import structlog

from configbridge.config.settings import BridgeSettings
from configbridge.config.snapshot import reset_configuration


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def settings(tmp_path: Path) -> BridgeSettings:
    """Bootstrap settings rooted in a temp directory."""
    return BridgeSettings(
        base_path=tmp_path,
        user_secrets_dir=tmp_path / "usersecrets",
        certificate_store_path=tmp_path / "certs",
        reload_poll_interval=0.05,
    )


@pytest.fixture
def fresh_configuration():
    """Reset the process-wide configuration around a test."""
    reset_configuration()
    yield reset_configuration
    reset_configuration()
