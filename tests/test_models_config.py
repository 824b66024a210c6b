"""Tests for configuration models."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from qastudio.ai.client import DEFAULT_MODEL
from qastudio.models.config import StudioConfig
from qastudio.models.session import ArtifactScope


class TestStudioConfig:
    """Tests for StudioConfig model."""

    def test_default_values(self):
        config = StudioConfig()
        assert config.data_dir == "./.qa-studio"
        assert config.ai_model == DEFAULT_MODEL
        assert config.ai_analysis_model is None
        assert config.default_scope == ArtifactScope.ALL
        assert config.more_cases_count == 3
        assert config.recent_url_limit == 5

    def test_derived_paths(self):
        config = StudioConfig(data_dir="/tmp/qa")
        assert config.sessions_path == Path("/tmp/qa/sessions.json")
        assert config.history_path == Path("/tmp/qa/recent_urls.json")
        assert config.debug_dir == Path("/tmp/qa/debug")

    @pytest.mark.parametrize("count", [0, 21])
    def test_more_cases_count_bounds(self, count):
        with pytest.raises(ValidationError):
            StudioConfig(more_cases_count=count)

    def test_api_key_env_indirection(self):
        with patch.dict(os.environ, {"MY_KEY": "sk-test"}):
            assert StudioConfig(ai_api_key="env:MY_KEY").ai_api_key == "sk-test"

    def test_api_key_env_missing(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError, match="MISSING_KEY"):
                StudioConfig(ai_api_key="env:MISSING_KEY")

    def test_resolved_user_id(self):
        assert StudioConfig(user_id="alice").resolved_user_id() == "alice"
        with patch("qastudio.models.config.getpass.getuser", return_value="bob"):
            assert StudioConfig().resolved_user_id() == "bob"
        with patch("qastudio.models.config.getpass.getuser", side_effect=OSError):
            assert StudioConfig().resolved_user_id() == "local"


class TestConfigPersistence:
    def test_save_and_load(self, tmp_path: Path):
        path = tmp_path / "nested" / "qa-studio.json"
        StudioConfig(user_id="alice", default_scope=ArtifactScope.CASES_ONLY).save(path)
        loaded = StudioConfig.load(path)
        assert loaded.user_id == "alice"
        assert loaded.default_scope == ArtifactScope.CASES_ONLY

    def test_api_key_not_saved(self, tmp_path: Path):
        path = tmp_path / "qa-studio.json"
        StudioConfig(ai_api_key="sk-secret").save(path)
        assert "sk-secret" not in path.read_text()
        assert "ai_api_key" not in json.loads(path.read_text())

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            StudioConfig.load(tmp_path / "missing.json")

    def test_load_or_default(self, tmp_path: Path):
        assert StudioConfig.load_or_default(tmp_path / "missing.json") == StudioConfig()
