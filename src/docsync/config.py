"""Runtime configuration for the docsync command.

Reads settings from CLI args, environment variables, .env files, and the
YAML config file (see ``config_loader`` and ``config_schema``).

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    DOCSYNC_AUTHOR: Author identity used for writes (e.g. ``@suzy``)
    DOCSYNC_STATE_DIR: Directory holding sync manifests
        (optional, default: ~/.docsync/manifests)
    DOCSYNC_CONFLICT_STRATEGY: Conflict resolver (optional, default: last-writer-wins)
    DOCSYNC_MAX_CONTENT_SIZE: Maximum document size in bytes (optional, default: 1000000)
    DOCSYNC_DEBUG: Enable debug logging (optional, default: false)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from docsync.config_schema import UnifiedConfig
from docsync.sync.indexer import DEFAULT_EXCLUDE
from docsync.sync.resolver import STRATEGIES
from docsync.validators import validate_author

logger = logging.getLogger(__name__)

DEFAULT_STATE_DIR = "~/.docsync/manifests"


@dataclass
class Config:
    author: str | None = None
    state_dir: Path = field(
        default_factory=lambda: Path(DEFAULT_STATE_DIR).expanduser()
    )
    conflict_strategy: str = "last-writer-wins"
    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE))
    store_extension: str = ".sqlite"
    document_format: str = "es.4"
    max_content_size: int = 1_000_000
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = None
    log_format: str = "text"


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If a strategy, author, extension, size limit or log
            format is invalid.
    """
    if config.author is not None:
        config.author = config.author.strip()
        ok, msg = validate_author(config.author)
        if not ok:
            raise ValueError(msg)

    if config.conflict_strategy not in STRATEGIES:
        raise ValueError(
            f"Unknown conflict strategy '{config.conflict_strategy}': "
            f"must be one of {', '.join(STRATEGIES)}"
        )

    ext = config.store_extension
    if not ext.startswith(".") or ext == ".":
        raise ValueError(
            f"Invalid store extension '{config.store_extension}': must start with '.'"
        )

    if config.max_content_size <= 0:
        raise ValueError(
            f"Invalid max content size {config.max_content_size}: must be positive"
        )

    if config.log_format not in ("text", "json"):
        raise ValueError(
            f"Invalid log format '{config.log_format}': must be 'text' or 'json'"
        )


def load_config(
    author: str | None = None,
    state_dir: str | None = None,
    conflict_strategy: str | None = None,
    debug: bool = False,
    log_file: str | None = None,
    log_format: str | None = None,
    yaml_config: UnifiedConfig | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_config > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        author: Override author identity.
        state_dir: Override manifest directory.
        conflict_strategy: Override conflict resolver name.
        debug: Enable debug logging (CLI flag).
        log_file: Also log to this file.
        log_format: ``"text"`` or ``"json"``.
        yaml_config: Values from the YAML config files, used as fallback
            when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If any resolved value is invalid.
    """
    fb = yaml_config or UnifiedConfig()

    # --- String fields: CLI > env > YAML > default ---

    final_author = author or os.getenv("DOCSYNC_AUTHOR") or fb.store.author

    final_state_dir = (
        state_dir or os.getenv("DOCSYNC_STATE_DIR") or fb.sync.state_dir
    )

    final_strategy = (
        conflict_strategy
        or os.getenv("DOCSYNC_CONFLICT_STRATEGY")
        or fb.sync.conflict_strategy
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    def get_bool_env(key: str) -> bool | None:
        """Return True/False from env var, or None if unset."""
        val = os.getenv(key)
        if val is None:
            return None
        return val.lower() in ("true", "1", "yes", "on")

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("DOCSYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = fb.logging.debug

    # --- Numeric fields: env > YAML > default ---

    max_size_raw = os.getenv("DOCSYNC_MAX_CONTENT_SIZE")
    if max_size_raw is not None:
        try:
            final_max_size = int(max_size_raw)
        except ValueError:
            raise ValueError(
                f"Invalid DOCSYNC_MAX_CONTENT_SIZE '{max_size_raw}': must be a positive number"
            ) from None
    else:
        final_max_size = fb.store.max_content_size

    config = Config(
        author=final_author,
        state_dir=Path(final_state_dir).expanduser(),
        conflict_strategy=final_strategy.strip(),
        exclude=list(fb.sync.exclude),
        store_extension=fb.store.extension,
        document_format=fb.store.format,
        max_content_size=final_max_size,
        debug=final_debug,
        log_level=fb.logging.level,
        log_file=log_file or fb.logging.file,
        log_format=log_format or fb.logging.format,
    )

    validate_config(config)

    return config
