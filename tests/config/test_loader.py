"""Tests for config/loader.py module.

Covers:
- _load_yaml() function
- _deep_merge() function
- load_config() precedence: kwargs > env > local yaml > global yaml > defaults
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from bridgepool.config import loader
from bridgepool.config.constants import DEFAULT_BASE_URL, DEFAULT_DIRECTORIES
from bridgepool.config.loader import _deep_merge, _load_yaml, load_config
from bridgepool.core.errors import ConfigError, ErrorCode


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """No global config, no local config, no BRIDGEPOOL__ env vars."""
    monkeypatch.setattr(loader, "GLOBAL_CONFIG_PATH", tmp_path / "global" / "config.yaml")
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    for key in list(os.environ):
        if key.upper().startswith("BRIDGEPOOL__"):
            monkeypatch.delenv(key)
    return workdir


class TestLoadYaml:
    """Tests for _load_yaml function."""

    def test_returns_empty_dict_for_missing_file(self, tmp_path: Path) -> None:
        """Returns empty dict when file doesn't exist."""
        assert _load_yaml(tmp_path / "nonexistent.yaml") == {}

    def test_loads_valid_yaml(self, tmp_path: Path) -> None:
        """Loads valid YAML content."""
        yaml_file = tmp_path / "config.yaml"
        yaml_file.write_text("fetch:\n  max_concurrency: 5\n")

        assert _load_yaml(yaml_file) == {"fetch": {"max_concurrency": 5}}

    def test_returns_empty_for_empty_file(self, tmp_path: Path) -> None:
        """Returns empty dict for empty file."""
        yaml_file = tmp_path / "empty.yaml"
        yaml_file.write_text("")

        assert _load_yaml(yaml_file) == {}

    def test_raises_config_error_for_invalid_yaml(self, tmp_path: Path) -> None:
        """Raises ConfigError for invalid YAML syntax."""
        yaml_file = tmp_path / "invalid.yaml"
        yaml_file.write_text("fetch:\n  max_concurrency:\n    - invalid: [unclosed")

        with pytest.raises(ConfigError) as exc_info:
            _load_yaml(yaml_file)
        assert exc_info.value.code == ErrorCode.CONFIG_PARSE_ERROR

    def test_raises_config_error_for_non_mapping(self, tmp_path: Path) -> None:
        """A top-level list is not a config."""
        yaml_file = tmp_path / "list.yaml"
        yaml_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigError):
            _load_yaml(yaml_file)


class TestDeepMerge:
    """Tests for _deep_merge function."""

    def test_override_wins(self) -> None:
        assert _deep_merge({"a": 1, "b": 2}, {"b": 3}) == {"a": 1, "b": 3}

    def test_nested_merge_keeps_siblings(self) -> None:
        base = {"fetch": {"max_concurrency": 5, "timeout_sec": 10.0}}
        override = {"fetch": {"max_concurrency": 8}}
        assert _deep_merge(base, override) == {"fetch": {"max_concurrency": 8, "timeout_sec": 10.0}}

    def test_does_not_mutate_base(self) -> None:
        base = {"a": {"b": 1}}
        _deep_merge(base, {"a": {"c": 2}})
        assert base == {"a": {"b": 1}}


class TestLoadConfig:
    """Tests for load_config function."""

    def test_given_no_sources_when_load_then_defaults(self) -> None:
        """Defaults apply when nothing is configured."""
        config = load_config()

        assert config.collector.base_url == DEFAULT_BASE_URL
        assert config.collector.directories == list(DEFAULT_DIRECTORIES)
        assert config.fetch.max_concurrency == 50
        assert config.database.batch_size == 1000
        assert config.database.clear is False

    def test_given_local_yaml_when_load_then_applied(self, isolated_config: Path) -> None:
        """./bridgepool.yaml is picked up from the working directory."""
        # Given
        (isolated_config / "bridgepool.yaml").write_text(
            "collector:\n  base_url: https://mirror.example\n"
        )

        # When
        config = load_config()

        # Then
        assert config.collector.base_url == "https://mirror.example"

    def test_given_global_and_local_yaml_when_load_then_local_wins_per_key(
        self, tmp_path: Path, isolated_config: Path
    ) -> None:
        """Local YAML is deep-merged over the global YAML."""
        # Given
        global_path = tmp_path / "global" / "config.yaml"
        global_path.parent.mkdir()
        global_path.write_text("fetch:\n  max_concurrency: 3\n  timeout_sec: 5\n")
        (isolated_config / "bridgepool.yaml").write_text("fetch:\n  max_concurrency: 9\n")

        # When
        config = load_config()

        # Then
        assert config.fetch.max_concurrency == 9
        assert config.fetch.timeout_sec == 5.0

    def test_given_env_var_when_load_then_overrides_yaml(
        self, isolated_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Environment variables beat the YAML file."""
        # Given
        (isolated_config / "bridgepool.yaml").write_text("fetch:\n  max_concurrency: 9\n")
        monkeypatch.setenv("BRIDGEPOOL__FETCH__MAX_CONCURRENCY", "7")

        # When
        config = load_config()

        # Then
        assert config.fetch.max_concurrency == 7

    def test_given_json_list_env_var_when_load_then_directories_set(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("BRIDGEPOOL__COLLECTOR__DIRECTORIES", '["recent/a", "archive/b"]')

        config = load_config()

        assert config.collector.directories == ["recent/a", "archive/b"]

    def test_given_kwargs_when_load_then_override_env_and_keep_other_keys(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Kwargs win, and a partial section leaves the other keys alone."""
        # Given
        monkeypatch.setenv("BRIDGEPOOL__DATABASE__URL", "sqlite:///env.db")
        monkeypatch.setenv("BRIDGEPOOL__DATABASE__BATCH_SIZE", "10")

        # When
        config = load_config(database={"url": "sqlite:///cli.db"})

        # Then
        assert config.database.url == "sqlite:///cli.db"
        assert config.database.batch_size == 10

    def test_given_comma_separated_dirs_when_load_then_split(self) -> None:
        config = load_config(collector={"directories": "recent/a, recent/b"})

        assert config.collector.directories == ["recent/a", "recent/b"]

    def test_given_empty_section_kwargs_when_load_then_ignored(self) -> None:
        config = load_config(collector={}, fetch=None)

        assert config.collector.base_url == DEFAULT_BASE_URL

    def test_given_missing_explicit_path_when_load_then_file_not_found(
        self, tmp_path: Path
    ) -> None:
        with pytest.raises(ConfigError) as exc_info:
            load_config(tmp_path / "nope.yaml")

        assert exc_info.value.code == ErrorCode.CONFIG_FILE_NOT_FOUND

    def test_given_explicit_path_when_load_then_local_default_ignored(
        self, tmp_path: Path, isolated_config: Path
    ) -> None:
        # Given
        (isolated_config / "bridgepool.yaml").write_text("fetch:\n  max_concurrency: 9\n")
        explicit = tmp_path / "explicit.yaml"
        explicit.write_text("fetch:\n  max_concurrency: 4\n")

        # When
        config = load_config(explicit)

        # Then
        assert config.fetch.max_concurrency == 4

    def test_given_invalid_value_when_load_then_config_error_names_field(self) -> None:
        """Validation failures surface as CONFIG_INVALID_VALUE."""
        with pytest.raises(ConfigError) as exc_info:
            load_config(fetch={"max_concurrency": 0})

        error = exc_info.value
        assert error.code == ErrorCode.CONFIG_INVALID_VALUE
        assert error.details["field"] == "fetch.max_concurrency"
