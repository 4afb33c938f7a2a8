"""
Test: environment configuration.
"""
from pathlib import Path

from iepminutes.config import DEFAULT_DATA_DIR, Config

ENV_VARS = ["IEP_DATA_DIR", "IEP_SYNC_MODE", "IEP_SYNC_TIMEOUT", "IEP_SYNC_ENVELOPE", "IEP_LOG_LEVEL"]


class TestConfig:
    def test_defaults(self, monkeypatch):
        for var in ENV_VARS:
            monkeypatch.delenv(var, raising=False)
        config = Config.from_env()
        assert config.data_dir == DEFAULT_DATA_DIR
        assert config.sync_mode == "push"
        assert config.pull_enabled is False
        assert config.sync_timeout == 10.0
        assert config.sync_envelope is False
        assert config.log_level == "INFO"

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("IEP_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("IEP_SYNC_MODE", "Pull")
        monkeypatch.setenv("IEP_SYNC_TIMEOUT", "2.5")
        monkeypatch.setenv("IEP_SYNC_ENVELOPE", "yes")
        monkeypatch.setenv("IEP_LOG_LEVEL", "debug")
        config = Config.from_env()
        assert config.data_dir == Path(tmp_path)
        assert config.pull_enabled is True
        assert config.sync_timeout == 2.5
        assert config.sync_envelope is True
        assert config.to_dict()["log_level"] == "DEBUG"

    def test_bad_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("IEP_SYNC_MODE", "merge")
        monkeypatch.setenv("IEP_SYNC_TIMEOUT", "soon")
        config = Config.from_env()
        assert config.sync_mode == "push"
        assert config.sync_timeout == 10.0
