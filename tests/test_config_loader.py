"""Tests for docsync.config_loader -- hierarchical config loading."""

import textwrap

import pytest
import yaml

from docsync.config_loader import (
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    interpolate_env_vars,
    load_hierarchical_config,
)


@pytest.fixture
def isolated_cwd(tmp_path, monkeypatch):
    """Run in an empty CWD with an empty HOME."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return tmp_path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_set_var(self, monkeypatch):
        monkeypatch.setenv("NOTES_AUTHOR", "@suzy")
        assert interpolate_env_vars("${NOTES_AUTHOR}") == "@suzy"

    def test_unset_var_becomes_empty(self, monkeypatch):
        monkeypatch.delenv("DOCSYNC_TEST_UNSET", raising=False)
        assert interpolate_env_vars("${DOCSYNC_TEST_UNSET}") == ""

    def test_default_when_unset_or_empty(self, monkeypatch):
        monkeypatch.delenv("DOCSYNC_TEST_UNSET", raising=False)
        monkeypatch.setenv("DOCSYNC_TEST_EMPTY", "")
        assert (
            interpolate_env_vars("${DOCSYNC_TEST_UNSET:-last-writer-wins}")
            == "last-writer-wins"
        )
        assert interpolate_env_vars("${DOCSYNC_TEST_EMPTY:-x}") == "x"

    def test_value_beats_default(self, monkeypatch):
        monkeypatch.setenv("STATE_ROOT", "/var/lib/docsync")
        assert (
            interpolate_env_vars("${STATE_ROOT:-/tmp}/manifests")
            == "/var/lib/docsync/manifests"
        )

    def test_unclosed_pattern_left_alone(self):
        assert interpolate_env_vars("${NOT_CLOSED") == "${NOT_CLOSED"

    def test_recursive_walk(self, monkeypatch):
        monkeypatch.setenv("NOTES_AUTHOR", "@suzy")
        data = {
            "store": {"author": "${NOTES_AUTHOR}", "max_content_size": 10},
            "sync": {"exclude": ["${NOTES_AUTHOR}.bak", "*.tmp"]},
        }
        assert _interpolate_recursive(data) == {
            "store": {"author": "@suzy", "max_content_size": 10},
            "sync": {"exclude": ["@suzy.bak", "*.tmp"]},
        }


# -------------------------------------------------------------------------
# YAML !include support
# -------------------------------------------------------------------------


class TestIncludeDirective:
    """Tests for !include YAML loading via the ConfigLoader subclass."""

    def test_relative_include(self, tmp_path):
        (tmp_path / "store.yml").write_text("author: '@suzy'\n")
        main = tmp_path / "config.yml"
        main.write_text("store: !include store.yml\n")

        assert _load_yaml_with_includes(main) == {
            "store": {"author": "@suzy"}
        }

    def test_absolute_include(self, tmp_path):
        excludes = tmp_path / "excludes.yml"
        excludes.write_text("- '*.bak'\n- build\n")
        main = tmp_path / "config.yml"
        main.write_text(f"exclude: !include {excludes}\n")

        assert _load_yaml_with_includes(main) == {
            "exclude": ["*.bak", "build"]
        }

    def test_missing_include(self, tmp_path):
        main = tmp_path / "config.yml"
        main.write_text("store: !include nowhere.yml\n")
        with pytest.raises(FileNotFoundError, match="nowhere.yml"):
            _load_yaml_with_includes(main)

    def test_circular_include(self, tmp_path):
        (tmp_path / "a.yml").write_text("x: !include b.yml\n")
        (tmp_path / "b.yml").write_text("y: !include a.yml\n")
        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(tmp_path / "a.yml")

    def test_safe_loader_is_untouched(self, tmp_path):
        """!include is registered on ConfigLoader only."""
        cfg = tmp_path / "config.yml"
        cfg.write_text("x: !include other.yml\n")
        with pytest.raises(yaml.constructor.ConstructorError):
            with open(cfg) as fh:
                yaml.safe_load(fh)


# -------------------------------------------------------------------------
# Convention-based file discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    """Tests for discover_config_files() precedence and filtering."""

    def test_nothing_found(self, isolated_cwd):
        assert discover_config_files() == []

    def test_env_var_first(self, isolated_cwd, monkeypatch):
        explicit = isolated_cwd / "explicit.yml"
        explicit.write_text("{}\n")
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text("{}\n")
        monkeypatch.setenv("DOCSYNC_CONFIG", str(explicit))

        result = discover_config_files()
        assert result[0] == explicit.resolve()
        assert project in result

    def test_project_before_global(self, isolated_cwd):
        project = isolated_cwd / ".docsync" / "config.yaml"
        project.parent.mkdir()
        project.write_text("{}\n")
        global_cfg = (
            isolated_cwd / "home" / ".config" / "docsync" / "config.yml"
        )
        global_cfg.parent.mkdir(parents=True)
        global_cfg.write_text("{}\n")

        assert discover_config_files() == [project, global_cfg]


# -------------------------------------------------------------------------
# Hierarchical merge
# -------------------------------------------------------------------------


class TestLoadHierarchicalConfig:
    """Tests for load_hierarchical_config() merge and interpolation."""

    def test_zero_config(self, isolated_cwd):
        assert load_hierarchical_config() == {}

    def test_sections_merge_key_by_key(self, isolated_cwd):
        global_cfg = (
            isolated_cwd / "home" / ".config" / "docsync" / "config.yml"
        )
        global_cfg.parent.mkdir(parents=True)
        global_cfg.write_text(
            textwrap.dedent("""\
            store:
              author: "@glob"
              extension: .db
            logging:
              level: DEBUG
            """)
        )
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text(
            textwrap.dedent("""\
            store:
              author: "@proj"
            """)
        )

        result = load_hierarchical_config()
        assert result["store"] == {"author": "@proj", "extension": ".db"}
        assert result["logging"] == {"level": "DEBUG"}

    def test_unknown_top_level_key_is_replaced(self, isolated_cwd, monkeypatch):
        explicit = isolated_cwd / "explicit.yml"
        explicit.write_text("extra:\n  a: 1\n")
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text("extra:\n  b: 2\n")
        monkeypatch.setenv("DOCSYNC_CONFIG", str(explicit))

        assert load_hierarchical_config() == {"extra": {"a": 1}}

    def test_relative_state_dir_follows_config_file(self, isolated_cwd):
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text("sync:\n  state_dir: manifests\n")

        result = load_hierarchical_config()
        assert result["sync"]["state_dir"] == str(
            project.resolve().parent / "manifests"
        )

    def test_home_and_absolute_state_dir_kept(self, isolated_cwd, tmp_path):
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text("sync:\n  state_dir: ~/manifests\n")
        assert load_hierarchical_config()["sync"]["state_dir"] == "~/manifests"

        project.write_text(f"sync:\n  state_dir: {tmp_path / 'abs'}\n")
        assert load_hierarchical_config()["sync"]["state_dir"] == str(
            tmp_path / "abs"
        )

    def test_interpolation(self, isolated_cwd, monkeypatch):
        monkeypatch.setenv("NOTES_AUTHOR", "@suzy")
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text("store:\n  author: ${NOTES_AUTHOR}\n")

        assert load_hierarchical_config() == {"store": {"author": "@suzy"}}

    def test_non_dict_root_is_skipped(self, isolated_cwd):
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text("- just\n- a list\n")
        assert load_hierarchical_config() == {}

    def test_broken_yaml_raises(self, isolated_cwd):
        project = isolated_cwd / ".docsync" / "config.yml"
        project.parent.mkdir()
        project.write_text("store: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()
