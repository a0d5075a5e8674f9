"""docsync -- synchronise a local directory with a SQLite document store."""

__version__ = "0.1.0"
