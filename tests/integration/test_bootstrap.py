"""
Integration Test: Application startup, health report and shutdown
"""

import logging

import pytest

from app import main
from app.config import Config
from app.logging_config import LOG_FILE_NAME, setup_logging
from repositories.database import DatabasePool
from services.voiceprint_service import VoiceprintService


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        handler.close()
    root.handlers = handlers
    root.setLevel(level)


@pytest.fixture
def configured(tmp_path, monkeypatch, restore_logging):
    monkeypatch.setattr(Config, "DATABASE_URL", f"sqlite:///{tmp_path / 'data' / 'voiceprint.db'}")
    monkeypatch.setattr(Config, "LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setattr(Config, "USER_DIRECTORY_MODE", "sql")
    monkeypatch.setattr(Config, "VOICEPRINT_APP_ID", "app")
    monkeypatch.setattr(Config, "VOICEPRINT_API_KEY", "key")
    monkeypatch.setattr(Config, "VOICEPRINT_API_SECRET", "secret")
    main.shutdown()
    yield tmp_path
    main.shutdown()


def test_setup_logging_writes_rotating_file(tmp_path, restore_logging):
    setup_logging(level="debug", log_dir=str(tmp_path))

    logging.getLogger("voiceprint.test").info("hello | user_id=42")
    for handler in logging.getLogger().handlers:
        handler.flush()

    assert logging.getLogger().level == logging.DEBUG
    assert "hello | user_id=42" in (tmp_path / LOG_FILE_NAME).read_text(encoding="utf-8")


def test_startup_wires_service_and_reports_health(configured):
    service = main.startup()

    assert isinstance(service, VoiceprintService)
    assert (configured / "data" / "voiceprint.db").exists()

    report = main.health()
    assert report["status"] == "healthy"
    assert report["startup"]["stage"] == "complete"
    assert report["checks"]["database"]["status"] == "healthy"


def test_shutdown_releases_pool(configured):
    main.startup()
    main.shutdown()

    assert not DatabasePool.is_initialized()
    assert main.health()["startup"]["stage"] == "pending"


def test_startup_fails_without_credentials(configured, monkeypatch):
    monkeypatch.setattr(Config, "VOICEPRINT_API_SECRET", "")

    with pytest.raises(ValueError):
        main.startup()


def test_metrics_exposition_contains_service_counters():
    assert b"voiceprint_" in main.metrics()
