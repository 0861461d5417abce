"""Logging setup for equiptrack.

Console output comes in two flavours selected by ``logging.format`` in the
config file (or ``EQUIPTRACK_LOG_FORMAT``):

- ``dev``: one readable line per record.
- ``json``: one JSON object per record, for log shippers.

Migration cycles additionally append to a durable file log whose lines read::

    [2026-10-17T09:14:03.512Z] Starting migration 3

Library modules never configure handlers themselves; they only do::

    logger = logging.getLogger(__name__)
"""

from __future__ import annotations

import json
import logging
import os
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

FORMAT_ENV = "EQUIPTRACK_LOG_FORMAT"
LEVEL_ENV = "EQUIPTRACK_LOG_LEVEL"

DEV_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
DEV_DATEFMT = "%Y-%m-%d %H:%M:%S"

# Attribute names every LogRecord has; anything else came in through ``extra=``.
_RESERVED = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _iso_utc(created: float) -> str:
    """``created`` as ISO-8601 UTC with milliseconds and a ``Z`` suffix."""
    stamp = datetime.fromtimestamp(created, tz=timezone.utc)
    return stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z"


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------

class JSONFormatter(logging.Formatter):
    """One JSON object per record.

    Keys are ``timestamp``, ``level``, ``logger`` and ``message``, followed by
    any ``extra=`` fields (for example ``version`` or ``operation``) and, when
    present, ``exception``.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": _iso_utc(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RESERVED and not key.startswith("_")
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class MigrationLogFormatter(logging.Formatter):
    """``[<timestamp>] <message>`` lines for the migration log."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"[{_iso_utc(record.created)}] {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# ---------------------------------------------------------------------------
# Console setup
# ---------------------------------------------------------------------------

def _resolve_level(level: int | str | None) -> int:
    if level is None:
        level = os.environ.get(LEVEL_ENV, "INFO")
    if isinstance(level, int):
        return level
    named = logging.getLevelName(level.upper())
    if isinstance(named, int):
        return named
    print(f"WARNING: Invalid LOG_LEVEL '{level}', using INFO", file=sys.stderr)
    return logging.INFO


def setup_logging(
    fmt: str | None = None,
    level: int | str | None = None,
) -> None:
    """Install a single stderr handler on the root logger.

    Parameters
    ----------
    fmt:
        ``"dev"`` or ``"json"``.  Falls back to ``EQUIPTRACK_LOG_FORMAT``,
        then ``"dev"``.
    level:
        Level name or number.  Falls back to ``EQUIPTRACK_LOG_LEVEL``, then
        ``INFO``.  Unknown names print a warning and use ``INFO``.
    """
    fmt = fmt or os.environ.get(FORMAT_ENV, "dev")
    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(DEV_FORMAT, datefmt=DEV_DATEFMT))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))

    # Per-statement debug output from the driver thread.
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Migration log
# ---------------------------------------------------------------------------

@contextmanager
def file_log_sink(target: logging.Logger, path: Path | None) -> Iterator[None]:
    """Append every INFO-or-higher record from *target* to *path* within the block.

    The file is opened in append mode and never truncated.  Records still
    propagate to the root handlers, so the console sees the same lines.
    Passing ``None`` for *path* makes the sink a no-op.
    """
    if path is None:
        yield
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
    handler.setFormatter(MigrationLogFormatter())
    handler.setLevel(logging.INFO)

    previous_level = target.level
    if target.getEffectiveLevel() > logging.INFO:
        target.setLevel(logging.INFO)
    target.addHandler(handler)
    try:
        yield
    finally:
        target.removeHandler(handler)
        target.setLevel(previous_level)
        handler.close()
