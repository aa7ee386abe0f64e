"""Tests for configuration loading."""

from __future__ import annotations

import pytest
import yaml

from migrunner.core.config import CONFIG_FILENAME, MigrunnerConfig, load_config
from migrunner.core.errors import ConfigError


class TestDefaults:
    def test_defaults(self):
        config = MigrunnerConfig()

        assert config.project_suffix == "DbMigrator.csproj"
        assert config.runner == "dotnet"
        assert config.run_args == ["run", "--project"]
        assert config.initial_status == "Running..."
        assert config.max_status_length == 90
        assert config.discard_stderr is False

    def test_no_file_returns_defaults(self, tmp_path):
        assert load_config(working_directory=tmp_path) == MigrunnerConfig()
        assert load_config() == MigrunnerConfig()


class TestLoadConfig:
    """Tests for YAML config files."""

    def test_project_file_in_working_directory(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            yaml.dump({"runner": "/opt/dotnet/dotnet", "termination_timeout": 3})
        )

        config = load_config(working_directory=tmp_path)

        assert config.runner == "/opt/dotnet/dotnet"
        assert config.termination_timeout == 3.0
        assert config.project_suffix == "DbMigrator.csproj"

    def test_explicit_path_wins(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("runner: from-project\n")
        explicit = tmp_path / "other.yaml"
        explicit.write_text("runner: from-explicit\n")

        config = load_config(explicit, working_directory=tmp_path)

        assert config.runner == "from-explicit"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_config(path) == MigrunnerConfig()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("runner: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "typo.yaml"
        path.write_text("runnr: dotnet\n")

        with pytest.raises(ConfigError, match="runnr"):
            load_config(path)

    def test_out_of_range_value_rejected(self, tmp_path):
        path = tmp_path / "range.yaml"
        path.write_text("poll_interval: 0\n")

        with pytest.raises(ConfigError, match="poll_interval"):
            load_config(path)
