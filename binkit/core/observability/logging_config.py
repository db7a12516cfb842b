"""
Logging configuration — one-time setup for the binkit CLI.

Library code only ever does ``logger = logging.getLogger(__name__)``;
handlers are attached here, once, by main.py.

Console level precedence:
    --debug / --verbose / --quiet  >  BINKIT_LOG_LEVEL  >  binkit.yml log_level  >  WARNING

The resolver logs every pipeline stage at DEBUG, the download cache logs
downloads and cleanups at INFO, so ``-v`` shows cache activity and
``--debug`` shows why a path resolved the way it did.

An optional log file (BINKIT_LOG_FILE / BINKIT_LOG_FILE_LEVEL) always
gets the detailed format.
"""

from __future__ import annotations

import logging
import sys

# Console format per level: plain messages by default, module names with -v,
# source lines with --debug.
_CONSOLE_FORMATS: dict[int, str] = {
    logging.DEBUG: "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s",
    logging.INFO: "%(asctime)s [%(name)s] %(message)s",
}
_CONSOLE_DATEFMT = "%H:%M:%S"

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

# which_bin runs the PATH walk through asyncio.to_thread
_NOISY_LOGGERS = ("asyncio",)


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    env_level: str | None = None,
    config_level: str | None = None,
) -> str:
    """Pick the console level from CLI flags, env and config."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return env_level or config_level or "WARNING"


def _console_formatter(level: int) -> logging.Formatter:
    for threshold in (logging.DEBUG, logging.INFO):
        if level <= threshold:
            return logging.Formatter(_CONSOLE_FORMATS[threshold], datefmt=_CONSOLE_DATEFMT)
    return logging.Formatter("%(message)s")


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Configure logging for the whole process.

    Args:
        level: Console level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Optional log file path.
        log_file_level: Level for the log file (default: ``level``).
        quiet_third_party: Keep asyncio at WARNING unless at DEBUG.
    """
    numeric_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    console.setFormatter(_console_formatter(numeric_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    effective_level = numeric_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else numeric_level
        effective_level = min(effective_level, file_level)

        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(fh)

    root.setLevel(effective_level)

    if quiet_third_party and numeric_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    # A failing handler must not break a resolution or a download
    logging.raiseExceptions = False


def _parse_level(level: str | None) -> int:
    """Convert a level name to its numeric value (WARNING if unknown)."""
    if not level:
        return logging.WARNING
    numeric = getattr(logging, level.upper(), None)
    if not isinstance(numeric, int):
        return logging.WARNING
    return numeric
