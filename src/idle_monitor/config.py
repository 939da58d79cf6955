"""Configuration models and helpers for the idle monitor."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from datetime import timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

from .paths import get_activity_log_path, get_diagnostic_log_path


@dataclass(frozen=True, slots=True)
class ClassifierThresholds:
    """Thresholds used by the state classifier."""

    idle_seconds: float = 60.0
    stuck_idle_seconds: float = 300.0
    stuck_tolerance_seconds: float = 2.0


@dataclass(slots=True)
class MonitorSettings:
    """Runtime configuration for a monitoring session."""

    idle_threshold: timedelta = timedelta(seconds=60)
    check_interval: timedelta = timedelta(seconds=5)
    diagnostics_enabled: bool = False
    diagnostic_interval: timedelta = timedelta(seconds=30)
    # Empirical values for the stuck idle counter; tune per machine.
    stuck_idle_window: timedelta = timedelta(seconds=300)
    stuck_idle_tolerance: timedelta = timedelta(seconds=2)
    probe_timeout: timedelta = timedelta(seconds=5)
    activity_log_path: Optional[Path] = None
    diagnostic_log_path: Optional[Path] = None

    @classmethod
    def from_intervals(
        cls,
        idle_seconds: float = 60.0,
        check_seconds: float = 5.0,
        diagnostics_enabled: bool = False,
        diagnostic_seconds: float = 30.0,
    ) -> "MonitorSettings":
        return cls(
            idle_threshold=timedelta(seconds=idle_seconds),
            check_interval=timedelta(seconds=check_seconds),
            diagnostics_enabled=diagnostics_enabled,
            diagnostic_interval=timedelta(seconds=diagnostic_seconds),
        )

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "MonitorSettings":
        """Build settings from ``*_seconds`` style keys, e.g. a parsed TOML table."""
        return cls().updated(**values)

    @classmethod
    def from_toml(cls, path: Path) -> "MonitorSettings":
        with Path(path).open("rb") as fh:
            data = tomllib.load(fh)
        # Allow either a flat file or a [monitor] table.
        return cls.from_mapping(data.get("monitor", data))

    def updated(self, **values: Any) -> "MonitorSettings":
        """Return a copy with the given option keys applied; ``None`` values are skipped."""
        changes: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if key in _SECONDS_OPTIONS:
                seconds = float(value)
                if seconds < 0 or (key in _POSITIVE_OPTIONS and seconds == 0):
                    raise ValueError(f"{key} must be positive, got {value!r}")
                changes[_SECONDS_OPTIONS[key]] = timedelta(seconds=seconds)
            elif key == "diagnostics_enabled":
                if not isinstance(value, bool):
                    raise ValueError(f"diagnostics_enabled must be a boolean, got {value!r}")
                changes[key] = value
            elif key in ("activity_log_path", "diagnostic_log_path"):
                changes[key] = Path(value).expanduser()
            else:
                raise ValueError(f"Unknown configuration option: {key}")
        return replace(self, **changes)

    @property
    def thresholds(self) -> ClassifierThresholds:
        return ClassifierThresholds(
            idle_seconds=self.idle_threshold.total_seconds(),
            stuck_idle_seconds=self.stuck_idle_window.total_seconds(),
            stuck_tolerance_seconds=self.stuck_idle_tolerance.total_seconds(),
        )

    def resolved_activity_log_path(self) -> Path:
        return self.activity_log_path or get_activity_log_path()

    def resolved_diagnostic_log_path(self) -> Path:
        return self.diagnostic_log_path or get_diagnostic_log_path()


_SECONDS_OPTIONS = {
    "idle_threshold_seconds": "idle_threshold",
    "check_interval_seconds": "check_interval",
    "diagnostic_interval_seconds": "diagnostic_interval",
    "stuck_idle_seconds": "stuck_idle_window",
    "stuck_tolerance_seconds": "stuck_idle_tolerance",
    "probe_timeout_seconds": "probe_timeout",
}

_POSITIVE_OPTIONS = frozenset(
    {"check_interval_seconds", "diagnostic_interval_seconds", "probe_timeout_seconds"}
)
