"""Logging setup for the docsync command line.

Log records always go to stderr; stdout carries only command output
(reports, JSON) so it can be piped.  ``--log-file`` adds a second handler
that appends to a file.
"""

import json
import logging
import os
import sys

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

#: Per-document attributes the sync executor attaches via ``extra=``.
CONTEXT_FIELDS = ("doc_path", "action")

#: Libraries that stay at WARNING unless debugging.
NOISY_LOGGERS = ("sqlalchemy", "charset_normalizer")


class JsonFormatter(logging.Formatter):
    """One JSON object per record: ts, level, logger, msg.

    Adds ``exc`` for exceptions and any of ``CONTEXT_FIELDS`` present on
    the record, so a failed path can be found without parsing ``msg``.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _make_formatter(log_format: str, with_name: bool) -> logging.Formatter:
    if log_format == "json":
        return JsonFormatter(datefmt=DATE_FORMAT)
    name = " %(name)s" if with_name else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s", datefmt=DATE_FORMAT
    )


def _resolve_level(debug: bool, level: str | None) -> int:
    if debug:
        return logging.DEBUG
    name = os.getenv("LOG_LEVEL") or level or "INFO"
    resolved = logging.getLevelName(name.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure the root logger.

    Args:
        debug: Force DEBUG, ignoring LOG_LEVEL and *level*.
        log_file: Also append records to this file (records carry the
            logger name there).
        debug_format: "text" (default) or "json".
        level: Level used when LOG_LEVEL is unset (default: INFO).

    Environment variables:
        LOG_LEVEL: DEBUG, INFO, WARNING or ERROR.
    """
    log_level = _resolve_level(debug, level)

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(_make_formatter(debug_format, with_name=False))
    handlers: list[logging.Handler] = [stderr_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, mode="a")
        file_handler.setFormatter(_make_formatter(debug_format, with_name=True))
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    if log_level != logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
