"""Tests for environment configuration and logging setup."""

import logging
from pathlib import Path

import pytest

from crudforge.config import EngineConfig
from crudforge.logconfig import configure_logging

ENV_VARS = [
    "CRUDFORGE_API_URL",
    "CRUDFORGE_TOKEN",
    "CRUDFORGE_TENANT",
    "CRUDFORGE_PAGE_SIZE",
    "CRUDFORGE_TIMEOUT",
    "CRUDFORGE_METADATA_PATH",
    "CRUDFORGE_DB_PATH",
    "CRUDFORGE_LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestEngineConfig:
    def test_defaults(self, clean_env, tmp_path):
        config = EngineConfig.from_env(tmp_path)
        assert config.api_url is None
        assert config.is_remote is False
        assert config.tenant == "default"
        assert config.page_size == 10
        assert config.timeout == 30.0
        assert config.metadata_path == tmp_path / "metadata"
        assert config.db_path == tmp_path / "data" / "crudforge.db"
        assert config.log_level == "WARNING"

    def test_remote(self, clean_env, monkeypatch):
        monkeypatch.setenv("CRUDFORGE_API_URL", "https://gateway.example.com")
        monkeypatch.setenv("CRUDFORGE_TOKEN", "secret")
        monkeypatch.setenv("CRUDFORGE_TENANT", "acme")
        monkeypatch.setenv("CRUDFORGE_PAGE_SIZE", "25")
        monkeypatch.setenv("CRUDFORGE_LOG_LEVEL", "debug")

        config = EngineConfig.from_env()

        assert config.is_remote is True
        assert config.token == "secret"
        assert config.tenant == "acme"
        assert config.page_size == 25
        assert config.log_level == "DEBUG"

    def test_absolute_paths_kept(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.setenv("CRUDFORGE_DB_PATH", str(tmp_path / "x.db"))
        config = EngineConfig.from_env(Path("/elsewhere"))
        assert config.db_path == tmp_path / "x.db"

    def test_empty_api_url_means_local(self, clean_env, monkeypatch):
        monkeypatch.setenv("CRUDFORGE_API_URL", "")
        assert EngineConfig.from_env().is_remote is False


class TestConfigureLogging:
    def test_single_handler(self):
        logger = configure_logging("INFO")
        configure_logging("DEBUG")
        tagged = [h for h in logger.handlers if getattr(h, "_crudforge", False)]
        assert len(tagged) == 1
        assert logger.level == logging.DEBUG

    def test_unknown_level_falls_back(self):
        assert configure_logging("LOUD").level == logging.WARNING
