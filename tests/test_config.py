"""
Tests for settings and .env loading.
"""

import os
from pathlib import Path

import pytest

from talentmatch.config import Settings
from talentmatch.env import load_env
from talentmatch.errors import ConfigurationError


class TestSettings:
    """Test environment-driven configuration."""

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.batch_size == 10
        assert settings.max_concurrency == 5
        assert settings.embedding_model == "text-embedding-3-large"
        assert settings.pipeline_timeout is None
        assert settings.db_path == Path("data/talentmatch.db")

    def test_overrides(self):
        settings = Settings.from_env({
            "OPENAI_API_KEY": " sk-test ",
            "TALENTMATCH_BATCH_SIZE": "20",
            "TALENTMATCH_BATCH_DELAY": "0.5",
            "TALENTMATCH_PIPELINE_TIMEOUT": "120",
            "TALENTMATCH_DB_PATH": "/tmp/tm.db",
        })

        assert settings.openai_api_key == "sk-test"
        assert settings.batch_size == 20
        assert settings.batch_delay == 0.5
        assert settings.pipeline_timeout == 120.0
        assert settings.db_path == Path("/tmp/tm.db")

    def test_blank_values_use_defaults(self):
        assert Settings.from_env({"TALENTMATCH_BATCH_SIZE": "  "}).batch_size == 10

    @pytest.mark.parametrize("value", ["0", "21"])
    def test_batch_size_bounds(self, value):
        with pytest.raises(ConfigurationError):
            Settings.from_env({"TALENTMATCH_BATCH_SIZE": value})

    def test_non_numeric(self):
        with pytest.raises(ConfigurationError):
            Settings.from_env({"TALENTMATCH_MAX_CONCURRENCY": "many"})

    def test_non_positive_timeout(self):
        with pytest.raises(ConfigurationError):
            Settings(pipeline_timeout=0)

    def test_require_api_key(self):
        assert Settings(openai_api_key="sk-test").require_api_key() == "sk-test"
        with pytest.raises(ConfigurationError):
            Settings().require_api_key()


class TestLoadEnv:
    """Test .env file loading."""

    def test_missing_file(self, tmp_path):
        assert load_env(tmp_path / ".env") is False

    def test_loads_without_overriding(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("TALENTMATCH_TEST_A=from_file\nTALENTMATCH_TEST_B=from_file\n")
        monkeypatch.setenv("TALENTMATCH_TEST_A", "from_env")
        monkeypatch.delenv("TALENTMATCH_TEST_B", raising=False)

        assert load_env(env_file) is True

        assert os.environ["TALENTMATCH_TEST_A"] == "from_env"
        assert os.environ["TALENTMATCH_TEST_B"] == "from_file"
        monkeypatch.delenv("TALENTMATCH_TEST_B")
