"""Tests for configuration loading -- file sections and env overrides."""

import json
import logging
import pytest
from unittest.mock import patch

ENV_VARS = (
    "ANTHROPIC_API_KEY", "ANTHROPIC_MODEL", "OPENAI_API_KEY", "OPENAI_MODEL",
    "GOOGLE_API_KEY", "GEMINI_API_KEY", "GOOGLE_MODEL", "STORYWEAVE_LLM_PROVIDER",
    "STORYWEAVE_MIN_CLUSTER_SIZE", "STORYWEAVE_MAX_GAP_DAYS",
    "STORYWEAVE_REFINE_ENABLED", "STORYWEAVE_REFINE_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_dataclass_defaults(self):
        from storyweave.common.config import StoryweaveConfig
        cfg = StoryweaveConfig()
        assert cfg.llm.provider == "anthropic"
        assert cfg.clustering.min_cluster_size == 2
        assert cfg.clustering.max_gap_days == 14
        assert cfg.clustering.collaborator_threshold == 2
        assert cfg.clustering.collaborator_window_days == 30
        assert cfg.refiner.timeout_seconds == 30.0
        assert cfg.refiner.batch_size == 40

    def test_model_follows_provider(self):
        from storyweave.common.config import LLMConfig
        assert LLMConfig(provider="openai", openai_model="gpt-4o").model == "gpt-4o"
        assert LLMConfig(provider="google").model == "gemini-2.0-flash"
        assert LLMConfig(provider="other").model == ""

    def test_missing_file_gives_defaults(self, tmp_path):
        from storyweave.common.config import load_config
        with patch("storyweave.common.config.CONFIG_PATH", tmp_path / "missing.json"):
            cfg = load_config()
        assert cfg.clustering.min_cluster_size == 2
        assert cfg.refiner.enabled is True


class TestConfigFile:
    def test_sections_loaded(self, tmp_path):
        from storyweave.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "llm": {"provider": "openai", "openai_api_key": "sk-test", "openai_model": "gpt-4o"},
            "clustering": {"min_cluster_size": 3, "dedup_by_container": False},
            "refiner": {"enabled": False, "batch_size": 10},
        }))

        with patch("storyweave.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.llm.provider == "openai"
        assert cfg.llm.model == "gpt-4o"
        assert cfg.clustering.min_cluster_size == 3
        assert cfg.clustering.max_gap_days == 14
        assert cfg.clustering.dedup_by_container is False
        assert cfg.refiner.enabled is False
        assert cfg.refiner.batch_size == 10

    def test_invalid_json_logs_and_keeps_defaults(self, tmp_path, caplog):
        from storyweave.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with caplog.at_level(logging.WARNING, logger="storyweave.common.config"):
            with patch("storyweave.common.config.CONFIG_PATH", config_file):
                cfg = load_config()

        assert cfg.llm.provider == "anthropic"
        assert "Failed to load config file" in caplog.text


class TestEnvOverrides:
    def test_env_beats_file(self, tmp_path, monkeypatch):
        from storyweave.common.config import load_config
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "llm": {"provider": "openai"},
            "clustering": {"max_gap_days": 21},
        }))
        monkeypatch.setenv("STORYWEAVE_LLM_PROVIDER", "anthropic")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-env")
        monkeypatch.setenv("STORYWEAVE_MAX_GAP_DAYS", "7")
        monkeypatch.setenv("STORYWEAVE_MIN_CLUSTER_SIZE", "1")

        with patch("storyweave.common.config.CONFIG_PATH", config_file):
            cfg = load_config()

        assert cfg.llm.provider == "anthropic"
        assert cfg.llm.anthropic_api_key == "sk-ant-env"
        assert cfg.clustering.max_gap_days == 7
        assert cfg.clustering.min_cluster_size == 1

    def test_gemini_key_alias(self, tmp_path, monkeypatch):
        from storyweave.common.config import load_config
        monkeypatch.setenv("GEMINI_API_KEY", "gm-key")
        with patch("storyweave.common.config.CONFIG_PATH", tmp_path / "missing.json"):
            cfg = load_config()
        assert cfg.llm.google_api_key == "gm-key"

    @pytest.mark.parametrize("value, expected", [("false", False), ("0", False), ("true", True), ("YES", True)])
    def test_refine_flag(self, tmp_path, monkeypatch, value, expected):
        from storyweave.common.config import load_config
        monkeypatch.setenv("STORYWEAVE_REFINE_ENABLED", value)
        with patch("storyweave.common.config.CONFIG_PATH", tmp_path / "missing.json"):
            cfg = load_config()
        assert cfg.refiner.enabled is expected

    def test_refine_timeout(self, tmp_path, monkeypatch):
        from storyweave.common.config import load_config
        monkeypatch.setenv("STORYWEAVE_REFINE_TIMEOUT", "4.5")
        with patch("storyweave.common.config.CONFIG_PATH", tmp_path / "missing.json"):
            cfg = load_config()
        assert cfg.refiner.timeout_seconds == 4.5
