"""
Tests for Configuration

Tests for YAML loading and default merging.
"""

import pytest
import yaml

from floorball_shots import config as config_module
from floorball_shots.config import DEFAULTS, load_config


class TestLoadConfig:
    """Tests for load_config."""

    def test_partial_file_merged_with_defaults(self, tmp_path):
        """Test that missing keys fall back to defaults."""
        path = tmp_path / "import_config.yaml"
        path.write_text(yaml.safe_dump({"save": {"mode": "http", "max_retries": 5}}))

        config = load_config(path)

        assert config["save"]["mode"] == "http"
        assert config["save"]["max_retries"] == 5
        assert config["save"]["endpoint"] == "/api/save-database"
        assert config["import"]["atomic_batches"] is True

    def test_empty_file(self, tmp_path):
        """Test that an empty file gives the defaults."""
        path = tmp_path / "import_config.yaml"
        path.write_text("")

        assert load_config(path) == DEFAULTS

    def test_missing_explicit_path(self, tmp_path):
        """Test that an explicit path must exist."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_missing_default_path(self, tmp_path, monkeypatch):
        """Test that a missing default file gives the defaults."""
        monkeypatch.setattr(config_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")

        config = load_config()

        assert config == DEFAULTS
        config["save"]["mode"] = "http"
        assert DEFAULTS["save"]["mode"] == "file"

    def test_shipped_config_loads(self):
        """Test the config file in the repository."""
        from pathlib import Path

        path = Path(__file__).parents[2] / "config" / "import_config.yaml"
        config = load_config(path)

        assert config["database"]["snapshot_path"].endswith(".sqlite")
