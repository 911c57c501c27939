"""Tests for winshirt_sync.config_loader -- layered YAML config files."""

import textwrap

import pytest
import yaml

from winshirt_sync.config_loader import (
    CONFIG_ENV_VAR,
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
    resolve_config_path,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Empty working directory and home, no explicit config path."""
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    return workdir


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("WS_TEST_HOST", "project.example.co")
        assert interpolate_env_vars("https://${WS_TEST_HOST}") == (
            "https://project.example.co"
        )

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("WS_TEST_UNSET", raising=False)
        assert interpolate_env_vars("${WS_TEST_UNSET}") == ""

    def test_default_used_when_unset_or_empty(self, monkeypatch):
        monkeypatch.delenv("WS_TEST_UNSET", raising=False)
        monkeypatch.setenv("WS_TEST_EMPTY", "")
        assert interpolate_env_vars("${WS_TEST_UNSET:-20}") == "20"
        assert interpolate_env_vars("${WS_TEST_EMPTY:-20}") == "20"

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("WS_TEST_BATCH", "50")
        assert interpolate_env_vars("${WS_TEST_BATCH:-20}") == "50"

    def test_unterminated_left_alone(self):
        assert interpolate_env_vars("${NO_CLOSE") == "${NO_CLOSE"

    def test_recursive_skips_non_strings(self, monkeypatch):
        monkeypatch.setenv("WS_TEST_KEY", "secret")
        data = {"remote": {"api_key": "${WS_TEST_KEY}", "timeout": 5}, "l": [1]}
        assert _interpolate_recursive(data) == {
            "remote": {"api_key": "secret", "timeout": 5},
            "l": [1],
        }


# -------------------------------------------------------------------------
# !include
# -------------------------------------------------------------------------


class TestIncludeDirective:
    def test_relative_include(self, tmp_path):
        _write(tmp_path / "secrets.yml", "api_key: secret123\n")
        main = _write(tmp_path / "config.yml", "remote: !include secrets.yml\n")

        assert _load_yaml_with_includes(main) == {
            "remote": {"api_key": "secret123"}
        }

    def test_nested_include(self, tmp_path):
        _write(tmp_path / "c.yml", "val: deep\n")
        _write(tmp_path / "b.yml", "inner: !include c.yml\n")
        a = _write(tmp_path / "a.yml", "outer: !include b.yml\n")

        assert _load_yaml_with_includes(a) == {
            "outer": {"inner": {"val": "deep"}}
        }

    def test_missing_include_raises(self, tmp_path):
        main = _write(tmp_path / "config.yml", "data: !include missing.yml\n")
        with pytest.raises(FileNotFoundError, match="missing.yml"):
            _load_yaml_with_includes(main)

    def test_circular_include_raises(self, tmp_path):
        a = _write(tmp_path / "a.yml", "x: !include b.yml\n")
        _write(tmp_path / "b.yml", "y: !include a.yml\n")
        with pytest.raises(ValueError, match="Circular include detected"):
            _load_yaml_with_includes(a)

    def test_global_safe_loader_untouched(self):
        with pytest.raises(yaml.constructor.ConstructorError):
            yaml.safe_load("x: !include other.yml\n")


# -------------------------------------------------------------------------
# Discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    def test_nothing_found(self, isolated):
        assert discover_config_files() == []

    def test_env_var_first(self, isolated, tmp_path, monkeypatch):
        explicit = _write(tmp_path / "explicit.yml", "remote: {}\n")
        project = _write(isolated / ".winshirt" / "config.yml", "remote: {}\n")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(explicit))

        found = discover_config_files()

        assert found[0] == explicit.resolve()
        assert project in found

    def test_project_before_global(self, isolated, tmp_path):
        global_cfg = _write(
            tmp_path / "home" / ".config" / "winshirt" / "config.yml", "{}\n"
        )
        project = _write(isolated / ".winshirt" / "config.yaml", "{}\n")

        assert discover_config_files() == [project, global_cfg]


class TestLoadHierarchicalConfig:
    def test_zero_config(self, isolated):
        assert load_hierarchical_config() == {}

    def test_project_section_replaces_global(self, isolated, tmp_path):
        _write(
            tmp_path / "home" / ".config" / "winshirt" / "config.yml",
            """\
            remote:
              url: https://global.example.co
              api_key: global-key
            sync:
              batch_size: 10
            """,
        )
        _write(
            isolated / ".winshirt" / "config.yml",
            """\
            remote:
              url: https://project.example.co
            """,
        )

        merged = load_hierarchical_config()

        assert merged["remote"] == {"url": "https://project.example.co"}
        assert merged["sync"] == {"batch_size": 10}

    def test_interpolation_after_merge(self, isolated, monkeypatch):
        monkeypatch.setenv("WS_TEST_KEY", "from-env")
        _write(
            isolated / ".winshirt" / "config.yml",
            "remote:\n  api_key: ${WS_TEST_KEY}\n",
        )
        assert load_hierarchical_config()["remote"]["api_key"] == "from-env"

    def test_non_dict_root_skipped(self, isolated):
        _write(isolated / ".winshirt" / "config.yml", "- a\n- b\n")
        assert load_hierarchical_config() == {}

    def test_broken_yaml_propagates(self, isolated):
        _write(isolated / ".winshirt" / "config.yml", "remote: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()


class TestEnsureConfig:
    def test_default_path(self, isolated):
        assert resolve_config_path() == isolated / ".winshirt" / "config.yml"

    def test_creates_starter(self, isolated):
        path = ensure_config()

        assert path == isolated / ".winshirt" / "config.yml"
        text = path.read_text(encoding="utf-8")
        assert "WINSHIRT_REMOTE_URL" in text
        # starter content is all comments
        assert yaml.safe_load(text) is None

    def test_explicit_target(self, isolated, tmp_path):
        target = tmp_path / "custom" / "deep" / "config.yml"
        assert ensure_config(target) == target
        assert target.exists()

    def test_existing_file_untouched(self, isolated):
        existing = _write(isolated / ".winshirt" / "config.yml", "sync: {}\n")
        assert ensure_config() == existing
        assert existing.read_text(encoding="utf-8") == "sync: {}\n"
