"""
Hierarchical configuration loader for docsync.

Config files are found by convention, may pull in other YAML files with
``!include`` and may reference the environment with ``${VAR}``.  When
several files are found they are layered section by section, with the
most specific file winning each key:

    # ~/.config/docsync/config.yml
    store:
      author: "@suzy"

    # ./.docsync/config.yml
    sync:
      exclude: ["*.bak"]
      state_dir: manifests     # relative to ./.docsync/

Usage:
    from docsync.config_loader import load_hierarchical_config

    config = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

#: Top-level keys merged key by key instead of replaced wholesale.
SECTIONS = ("store", "sync", "logging")

# ---------------------------------------------------------------------------
# Env var interpolation
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Substitute ``${VAR}`` / ``${VAR:-default}`` in *value*.

    An unset or empty variable becomes its default, or ``""`` without one.
    An unterminated ``${`` is kept as written.
    """

    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1)) or match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# YAML loading with !include
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include <path>``.

    Each loader knows the chain of files that led to it so that a file
    including itself, directly or through others, is reported instead of
    recursing forever.  ``yaml.SafeLoader`` itself gains no constructors.
    """

    def __init__(self, stream, include_chain: tuple[Path, ...]) -> None:
        super().__init__(stream)
        self.include_chain = include_chain

    @property
    def source(self) -> Path:
        return self.include_chain[-1]

    def construct_include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node)).expanduser()
        if not target.is_absolute():
            target = self.source.parent / target
        target = target.resolve()

        if target in self.include_chain:
            chain = " -> ".join(str(p) for p in (*self.include_chain, target))
            raise ValueError(f"Circular include detected: {chain}")
        if not target.is_file():
            raise FileNotFoundError(
                f"Include file not found: {target} (included from {self.source})"
            )
        return _load_yaml_with_includes(target, (*self.include_chain, target))


ConfigLoader.add_constructor("!include", ConfigLoader.construct_include)


def _load_yaml_with_includes(
    path: Path, include_chain: tuple[Path, ...] | None = None
) -> Any:
    """Parse one YAML file, expanding ``!include`` tags."""
    path = Path(path).resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh, include_chain or (path,))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, most specific first.

    Search order:
        1. ``$DOCSYNC_CONFIG``
        2. ``./.docsync/config.yml``
        3. ``./.docsync/config.yaml``
        4. ``~/.config/docsync/config.yml``
    """
    candidates: list[Path] = []

    env_path = os.environ.get("DOCSYNC_CONFIG")
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    project_dir = Path.cwd() / ".docsync"
    candidates += [project_dir / "config.yml", project_dir / "config.yaml"]
    candidates.append(Path.home() / ".config" / "docsync" / "config.yml")

    return [p for p in candidates if p.is_file()]


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def _anchor_state_dir(data: dict[str, Any], config_file: Path) -> None:
    """Make a relative ``sync.state_dir`` relative to *config_file*."""
    sync = data.get("sync")
    if not isinstance(sync, dict):
        return
    state_dir = sync.get("state_dir")
    if not isinstance(state_dir, str) or not state_dir:
        return
    if state_dir.startswith("~") or Path(state_dir).is_absolute():
        return
    sync["state_dir"] = str(config_file.resolve().parent / state_dir)


def _merge_into(merged: dict[str, Any], data: dict[str, Any]) -> None:
    for key, value in data.items():
        current = merged.get(key)
        if (
            key in SECTIONS
            and isinstance(current, dict)
            and isinstance(value, dict)
        ):
            merged[key] = {**current, **value}
        else:
            merged[key] = value


def load_hierarchical_config() -> dict[str, Any]:
    """Load every discovered config file and layer them.

    Files are applied from least to most specific.  Within the ``store``,
    ``sync`` and ``logging`` sections individual keys override; any other
    top-level key is replaced as a whole.  Environment references are
    expanded per file before merging.

    Returns:
        The merged mapping, or ``{}`` when no config file exists.

    Raises:
        yaml.YAMLError: If a file is not valid YAML.
        ValueError: On a circular ``!include``.
        FileNotFoundError: If an ``!include`` target is missing.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except (yaml.YAMLError, ValueError, OSError):
            logger.error("Failed to load config file %s", path)
            raise

        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring config file %s: expected a mapping, got %s",
                path,
                type(data).__name__,
            )
            continue

        data = _interpolate_recursive(data)
        _anchor_state_dir(data, path)
        _merge_into(merged, data)

    return merged
