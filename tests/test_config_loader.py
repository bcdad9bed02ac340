"""Tests for csv_issue_sync.config_loader -- hierarchical config loading."""

import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from csv_issue_sync.config_loader import (
    discover_config_files,
    ensure_config,
    expand_env,
    load_hierarchical_config,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Empty CWD and HOME, no CSV_SYNC_CONFIG."""
    monkeypatch.delenv("CSV_SYNC_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return tmp_path


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text))
    return path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestExpandEnv:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("MY_OWNER", "acme")
        assert expand_env("${MY_OWNER}") == "acme"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert expand_env("${UNSET_VAR_XYZ}") == ""

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert expand_env("${UNSET_VAR_XYZ:-issues.csv}") == "issues.csv"

    def test_empty_env_var_uses_default(self, monkeypatch):
        monkeypatch.setenv("EMPTY_VAR", "")
        assert expand_env("${EMPTY_VAR:-fallback}") == "fallback"

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("MY_OWNER", "acme")
        assert expand_env("${MY_OWNER:-other}") == "acme"

    def test_multiple_vars_in_one_string(self, monkeypatch):
        monkeypatch.setenv("A", "x")
        monkeypatch.setenv("B", "y")
        assert expand_env("${A}/${B}") == "x/y"

    def test_literal_dollar_brace_no_closing(self):
        assert expand_env("cost ${oops") == "cost ${oops"

    def test_nested_values_expanded(self, monkeypatch):
        monkeypatch.setenv("TOKEN", "ghp_1")
        tree = {"github": {"token": "${TOKEN}", "n": 3, "tags": ["${TOKEN}"]}}
        assert expand_env(tree) == {
            "github": {"token": "ghp_1", "n": 3, "tags": ["ghp_1"]}
        }


# -------------------------------------------------------------------------
# Discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    def test_empty_filesystem_returns_empty(self, isolated):
        assert discover_config_files() == []

    def test_env_var_takes_highest_precedence(self, isolated, monkeypatch):
        custom = _write(isolated / "custom.yml", "sync: {}\n")
        _write(isolated / ".csv_sync" / "config.yml", "sync: {}\n")
        monkeypatch.setenv("CSV_SYNC_CONFIG", str(custom))

        result = discover_config_files()

        assert result[0] == custom.resolve()
        assert len(result) == 2

    def test_missing_env_path_excluded(self, isolated, monkeypatch):
        monkeypatch.setenv("CSV_SYNC_CONFIG", str(isolated / "nope.yml"))
        assert discover_config_files() == []

    def test_project_before_global(self, isolated):
        project = _write(isolated / ".csv_sync" / "config.yml", "a: 1\n")
        global_cfg = _write(
            isolated / "home" / ".config" / "csv_sync" / "config.yml", "b: 2\n"
        )

        result = [p.resolve() for p in discover_config_files()]

        assert result == [project.resolve(), global_cfg.resolve()]

    def test_yaml_extension_discovered(self, isolated):
        alt = _write(isolated / ".csv_sync" / "config.yaml", "a: 1\n")
        assert [p.resolve() for p in discover_config_files()] == [alt.resolve()]


# -------------------------------------------------------------------------
# Hierarchical merge
# -------------------------------------------------------------------------


class TestLoadHierarchicalConfig:
    def test_zero_config_returns_empty_dict(self, isolated):
        assert load_hierarchical_config() == {}

    def test_project_overrides_global_at_section_level(self, isolated):
        _write(
            isolated / "home" / ".config" / "csv_sync" / "config.yml",
            """\
            github:
              owner: global-owner
              repo: global-repo
            logging:
              level: DEBUG
            """,
        )
        _write(
            isolated / ".csv_sync" / "config.yml",
            """\
            github:
              owner: project-owner
            """,
        )

        result = load_hierarchical_config()

        # Whole section replaced, not deep-merged
        assert result["github"] == {"owner": "project-owner"}
        assert result["logging"] == {"level": "DEBUG"}

    def test_env_var_interpolation_after_merge(self, isolated, monkeypatch):
        monkeypatch.setenv("GH_TOKEN_FOR_TEST", "ghp_from_env")
        _write(
            isolated / ".csv_sync" / "config.yml",
            """\
            github:
              token: ${GH_TOKEN_FOR_TEST}
            sync:
              csv_path: ${MISSING_CSV_VAR:-tasks.csv}
            """,
        )

        result = load_hierarchical_config()

        assert result["github"]["token"] == "ghp_from_env"
        assert result["sync"]["csv_path"] == "tasks.csv"

    def test_non_dict_root_skipped(self, isolated):
        _write(isolated / ".csv_sync" / "config.yml", "- just\n- a list\n")
        assert load_hierarchical_config() == {}

    def test_invalid_yaml_raises(self, isolated):
        _write(isolated / ".csv_sync" / "config.yml", "github: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()


# -------------------------------------------------------------------------
# ensure_config
# -------------------------------------------------------------------------


class TestEnsureConfig:
    def test_noop_when_exists(self, isolated):
        existing = Path("/fake/existing/config.yml")
        with patch(
            "csv_issue_sync.config_loader.discover_config_files",
            return_value=[existing],
        ):
            assert ensure_config() == existing
        assert not (isolated / ".csv_sync").exists()

    def test_creates_directory_and_file(self, isolated):
        result = ensure_config()

        assert result == Path.cwd() / ".csv_sync" / "config.yml"
        content = result.read_text()
        assert "# csv-issue-sync configuration" in content
        assert "# sync:" in content
        assert "# logging:" in content

    def test_uses_explicit_target(self, isolated):
        target = isolated / "nested" / "dir" / "sync.yml"
        assert ensure_config(target=target) == target
        assert target.exists()

    def test_starter_config_is_valid_yaml(self, isolated):
        path = ensure_config()
        # Everything is commented out, so the file parses to nothing
        assert yaml.safe_load(path.read_text()) is None
