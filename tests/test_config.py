"""Tests for configuration loading."""

import json

import pytest
from pydantic import ValidationError

from ctxgit.agent.memory import MemoryController
from ctxgit.config import Config, MemoryConfig, load_config, save_config


class TestConfig:
    """Test the settings model."""

    def test_defaults(self):
        config = Config()
        assert config.memory.log_lines == 20
        assert config.memory.branch_commits == 10
        assert config.memory.merge_inline_history is True
        assert config.log_level == "INFO"
        assert config.legacy_path == config.memory_path

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("CTXGIT_MEMORY__LOG_LINES", "5")
        monkeypatch.setenv("CTXGIT_MEMORY__ROOT", str(tmp_path))
        monkeypatch.setenv("CTXGIT_LOG_LEVEL", "debug")

        config = Config()
        assert config.memory.log_lines == 5
        assert config.memory_path == tmp_path
        assert config.log_level == "DEBUG"

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            MemoryConfig(log_lines=0)
        with pytest.raises(ValidationError):
            Config(log_level="LOUD")

    def test_legacy_dir(self, tmp_path):
        config = Config(memory=MemoryConfig(root=str(tmp_path / "mem"), legacy_dir=str(tmp_path / "records")))
        assert config.legacy_path == tmp_path / "records"


class TestLoader:
    """Test reading and writing config.json."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "config.json"
        config = Config(memory=MemoryConfig(root=str(tmp_path / "mem"), log_lines=7))
        save_config(config, path)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["memory"]["logLines"] == 7

        loaded = load_config(path)
        assert loaded.memory.log_lines == 7
        assert loaded.memory.root == str(tmp_path / "mem")

    def test_missing_file(self, tmp_path):
        assert load_config(tmp_path / "absent.json").memory.log_lines == 20

    def test_broken_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_config(path).memory.log_lines == 20

    def test_controller_from_config(self, tmp_path):
        config = Config(memory=MemoryConfig(root=str(tmp_path / "mem"), log_lines=3))
        memory = MemoryController.from_config(config)

        assert memory.root == tmp_path / "mem"
        assert (tmp_path / "mem" / ".ctx" / "main.md").exists()
        assert memory.retriever.log_lines == 3
