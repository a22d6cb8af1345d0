"""Centralized path, settings and logging management for prwatch.

Everything prwatch writes lives under ~/.prwatch/ (or $PRWATCH_HOME):
- ~/.prwatch/debug/prwatch.log  - Rotating log file, including gh commands
- ~/.prwatch/debug.flag         - If this file exists, enable debug logging

The terminal belongs to the TUI, so nothing is ever logged to stdout/stderr.
"""

import logging
import os
import shlex
from pathlib import Path

# Loggers created by configure_logger, so set_debug can adjust them later
_configured_loggers: list[str] = []

_TRUE_VALUES = {"1", "true", "yes", "on"}


def prwatch_home() -> Path:
    """Return the prwatch home directory (~/.prwatch/ unless $PRWATCH_HOME is set)."""
    override = os.environ.get("PRWATCH_HOME")
    d = Path(override) if override else Path.home() / ".prwatch"
    d.mkdir(parents=True, exist_ok=True)
    return d


def debug_dir() -> Path:
    """Return the debug/logs directory (~/.prwatch/debug/)."""
    d = prwatch_home() / "debug"
    d.mkdir(parents=True, exist_ok=True)
    return d


def log_file() -> Path:
    return debug_dir() / "prwatch.log"


def debug_enabled() -> bool:
    """Check if debug logging is enabled.

    Enabled by PRWATCH_DEBUG=1 in the environment or by an existing
    ~/.prwatch/debug.flag file.
    """
    if os.environ.get("PRWATCH_DEBUG", "").strip().lower() in _TRUE_VALUES:
        return True
    return (prwatch_home() / "debug.flag").exists()


def set_debug(enabled: bool = True) -> None:
    """Switch every configured logger to DEBUG (or back to INFO)."""
    level = logging.DEBUG if enabled else logging.INFO
    for name in _configured_loggers:
        logging.getLogger(name).setLevel(level)


def configure_logger(name: str, max_bytes: int = 10_000_000) -> logging.Logger:
    """Configure a logger that always writes to file with rotation.

    Args:
        name: Logger name (e.g., "prwatch.scheduler")
        max_bytes: Maximum log file size before rotation (default 10MB)

    Returns:
        Configured logger instance
    """
    from logging.handlers import RotatingFileHandler

    logger = logging.getLogger(name)

    # Avoid adding duplicate handlers
    if logger.handlers:
        return logger

    handler = RotatingFileHandler(
        log_file(),
        maxBytes=max_bytes,
        backupCount=1,  # Keep one backup file
    )
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(handler)
    logger.propagate = False

    if debug_enabled():
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    _configured_loggers.append(name)
    return logger


def log_shell_command(cmd: list[str] | str, prefix: str = "shell", returncode: int | None = None) -> None:
    """Log a shell command to the central log file.

    Args:
        cmd: Command list or string to log
        prefix: Prefix for the log entry (e.g., "gh")
        returncode: If provided, logs as completion with return code
    """
    cmd_str = shlex.join(cmd) if isinstance(cmd, list) else cmd
    # GraphQL queries are long and multi-line; keep the log one line per command
    cmd_str = " ".join(cmd_str.split())
    if len(cmd_str) > 200:
        cmd_str = cmd_str[:197] + "..."

    try:
        from datetime import datetime
        timestamp = datetime.now().strftime("%H:%M:%S")

        if returncode is not None:
            if returncode == 0:
                entry = f"{timestamp} INFO  {prefix} done: {cmd_str}\n"
            else:
                entry = f"{timestamp} WARN  {prefix} failed (rc={returncode}): {cmd_str}\n"
        else:
            entry = f"{timestamp} INFO  {prefix}: {cmd_str}\n"

        with open(log_file(), "a") as f:
            f.write(entry)
    except (OSError, IOError):
        pass  # Silently fail if we can't write to log
