"""Default locations of the monitor's log files."""

from __future__ import annotations

from pathlib import Path

from platformdirs import PlatformDirs

ACTIVITY_LOG_NAME = "activity_log.txt"
DIAGNOSTIC_LOG_NAME = "debug_log.txt"

_dirs = PlatformDirs(appname="IdleMonitor", appauthor=False)


def get_log_dir() -> Path:
    """Per-user data directory holding both logs.

    Nothing is created here; the sinks create missing parents when they open.
    """
    return Path(_dirs.user_data_path)


def get_activity_log_path() -> Path:
    return get_log_dir() / ACTIVITY_LOG_NAME


def get_diagnostic_log_path() -> Path:
    return get_log_dir() / DIAGNOSTIC_LOG_NAME
