"""
Logging configuration for the phpstack CLI.

``configure_from_cli`` is called once by main.py; every module that does
``logger = logging.getLogger(__name__)`` inherits what it sets up.

Level precedence:
    --debug / --verbose / --quiet  >  PHPSTACK_LOG_LEVEL  >  INFO

A provisioning run is watched by whoever typed ``sudo phpstack install``,
so step progress (INFO) is shown by default.  PHPSTACK_LOG_FILE adds a
full-detail file log, at PHPSTACK_LOG_FILE_LEVEL if set.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Mapping

ENV_LEVEL = "PHPSTACK_LOG_LEVEL"
ENV_FILE = "PHPSTACK_LOG_FILE"
ENV_FILE_LEVEL = "PHPSTACK_LOG_FILE_LEVEL"

DEFAULT_LEVEL = "INFO"

# ── Formats ─────────────────────────────────────────────────────

# --quiet: only failures reach the console, and the CLI prints its own
# final line, so no timestamps
_FMT_MINIMAL = "[%(levelname)s] %(message)s"

# Step progress
_FMT_PROGRESS = "[%(asctime)s] [%(levelname)s] %(message)s"
_DATEFMT_PROGRESS = "%Y-%m-%d %H:%M:%S"

# --debug and the log file: which module said it, and where
_FMT_DETAIL = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d | %(message)s"
_DATEFMT_DETAIL = "%H:%M:%S"
_DATEFMT_FILE = "%Y-%m-%d %H:%M:%S"


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return (environ or {}).get(ENV_LEVEL) or DEFAULT_LEVEL


def _console_formatter(numeric_level: int) -> logging.Formatter:
    if numeric_level <= logging.DEBUG:
        return logging.Formatter(_FMT_DETAIL, datefmt=_DATEFMT_DETAIL)
    if numeric_level <= logging.WARNING:
        return logging.Formatter(_FMT_PROGRESS, datefmt=_DATEFMT_PROGRESS)
    return logging.Formatter(_FMT_MINIMAL)


def setup_logging(
    level: str = DEFAULT_LEVEL,
    log_file: str | None = None,
    log_file_level: str | None = None,
) -> None:
    """Install the console handler (stderr) and an optional file handler.

    Replaces any handlers already on the root logger, so repeated calls
    do not stack output.
    """
    numeric_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(_console_formatter(numeric_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FMT_DETAIL, datefmt=_DATEFMT_FILE))
        root.addHandler(fh)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)


def configure_from_cli(
    *,
    debug: bool,
    verbose: bool,
    quiet: bool,
    environ: Mapping[str, str],
) -> str:
    """Configure logging for one CLI invocation; returns the console level."""
    level = resolve_level(debug=debug, verbose=verbose, quiet=quiet, environ=environ)
    setup_logging(
        level=level,
        log_file=environ.get(ENV_FILE),
        log_file_level=environ.get(ENV_FILE_LEVEL),
    )
    return level


def _parse_level(level: str | None) -> int:
    """Level name to its numeric value; unknown names fall back to INFO."""
    numeric = getattr(logging, level.upper(), None) if level else None
    return numeric if isinstance(numeric, int) else logging.INFO
