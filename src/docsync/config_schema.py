"""Unified configuration schema for docsync.

Defines Pydantic models for the config file structure with dedicated
sections for the document store, sync runs and logging.

Usage:
    from docsync.config_loader import load_hierarchical_config
    from docsync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class StoreConfig(BaseModel):
    """Document store settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    author: str | None = Field(
        default=None, description="Author identity used for writes"
    )
    extension: str = Field(
        default=".sqlite", description="Required store file extension"
    )
    format: str = Field(default="es.4", description="Document format")
    max_content_size: int = Field(
        default=1_000_000,
        ge=1,
        description="Maximum document size in bytes",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Directory <-> store sync settings."""

    state_dir: str = Field(
        default="~/.docsync/manifests",
        description="Directory holding sync manifests",
    )
    conflict_strategy: str = Field(
        default="last-writer-wins",
        description="Conflict resolver: last-writer-wins, store-wins, "
        "disk-wins or manual",
    )
    exclude: list[str] = Field(
        default_factory=lambda: [".docsync-*"],
        description="Glob patterns of paths never synced",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``"text"`` or ``"json"``.
        debug: Enable debug logging.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", description="Log line format")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.

    Raises:
        pydantic.ValidationError: If a section has the wrong shape.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)
