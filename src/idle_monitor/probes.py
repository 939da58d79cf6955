"""Signal sources that query macOS power and display indicators."""

from __future__ import annotations

import abc
import logging
import re
import subprocess
from typing import Optional, Union

import psutil

from .models import SignalKind, SignalReading

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0

_IDLE_RE = re.compile(r'"HIDIdleTime"\s*=\s*(\d+)')
_POWER_STATE_RE = re.compile(r'"?CurrentPowerState"?\s*=\s*(\d+)')
_BRIGHTNESS_VALUE_RE = re.compile(r'"value"\s*=\s*(\d+)')
_BRIGHTNESS_RE = re.compile(r'"brightness"\s*=\s*(\d+)')


class ProbeFailure(Exception):
    """A single signal could not be read this tick."""


def _run(args: list[str], timeout: float) -> str:
    # Own session: a Ctrl+C meant for the monitor must not kill the probe.
    result = subprocess.run(
        args, capture_output=True, text=True, timeout=timeout, start_new_session=True
    )
    if result.returncode != 0:
        raise ProbeFailure(f"{args[0]} exited with status {result.returncode}")
    return result.stdout


def _first_line_containing(output: str, needle: str) -> Optional[str]:
    for line in output.splitlines():
        if needle in line:
            return line.strip()
    return None


def parse_idle_seconds(output: str) -> Optional[int]:
    """Extract whole seconds from ``ioreg -c IOHIDSystem`` (HIDIdleTime is in ns)."""
    match = _IDLE_RE.search(output)
    if not match:
        return None
    return int(match.group(1)) // 1_000_000_000


def parse_power_state(line: str) -> Optional[int]:
    match = _POWER_STATE_RE.search(line)
    return int(match.group(1)) if match else None


def parse_brightness(line: str) -> Optional[int]:
    """Read the brightness level; newer ioreg prints a ``{"value"=N}`` dictionary."""
    match = _BRIGHTNESS_VALUE_RE.search(line) or _BRIGHTNESS_RE.search(line)
    return int(match.group(1)) if match else None


def count_resolutions(output: str) -> int:
    return sum(1 for line in output.splitlines() if "Resolution" in line)


class SignalSource(abc.ABC):
    """One OS indicator. ``probe()`` never raises; failures become unavailable readings."""

    kind: SignalKind
    fallback: Union[int, str, None] = None

    def __init__(self, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.timeout = timeout

    @abc.abstractmethod
    def _query(self) -> SignalReading:
        """Read the indicator, raising on any failure."""

    def probe(self) -> SignalReading:
        try:
            return self._query()
        except (ProbeFailure, OSError, subprocess.SubprocessError, ValueError) as exc:
            logger.debug("%s probe unavailable: %s", self.kind.value, exc)
        except Exception:  # pragma: no cover - defensive log path
            logger.exception("Unexpected %s probe failure.", self.kind.value)
        return self.unavailable()

    def unavailable(self) -> SignalReading:
        return SignalReading(value=self.fallback, available=False)


class IdleDurationSource(SignalSource):
    kind = SignalKind.IDLE_DURATION
    fallback = 0

    def _query(self) -> SignalReading:
        output = _run(["ioreg", "-c", "IOHIDSystem"], self.timeout)
        seconds = parse_idle_seconds(output)
        if seconds is None:
            raise ProbeFailure("HIDIdleTime not found")
        return SignalReading(value=seconds, available=True, raw=str(seconds))


class DisplayPowerSource(SignalSource):
    """IODisplayWrangler power state; 0 means the display is powered off."""

    kind = SignalKind.DISPLAY_POWER

    def _query(self) -> SignalReading:
        output = _run(["ioreg", "-r", "-c", "IODisplayWrangler"], self.timeout)
        line = _first_line_containing(output, "CurrentPowerState")
        if line is None:
            raise ProbeFailure("CurrentPowerState not found")
        state = parse_power_state(line)
        if state is None:
            return SignalReading(value=None, available=False, raw=line)
        return SignalReading(value=state, available=True, raw=line)


class BrightnessSource(SignalSource):
    kind = SignalKind.BRIGHTNESS

    def _query(self) -> SignalReading:
        output = _run(["ioreg", "-r", "-c", "AppleBacklightDisplay"], self.timeout)
        line = _first_line_containing(output, '"brightness"')
        if line is None:
            raise ProbeFailure("brightness not found")
        value = parse_brightness(line)
        if value is None:
            return SignalReading(value=None, available=False, raw=line)
        return SignalReading(value=value, available=True, raw=line)


class DisplayCountSource(SignalSource):
    kind = SignalKind.DISPLAY_COUNT

    def _query(self) -> SignalReading:
        output = _run(["system_profiler", "SPDisplaysDataType"], self.timeout)
        count = count_resolutions(output)
        return SignalReading(value=count, available=True, raw=str(count))


class PowerSummarySource(SignalSource):
    """Head of ``pmset -g``; falls back to psutil's battery view without pmset."""

    kind = SignalKind.POWER_SUMMARY
    fallback = "N/A"
    max_lines = 5

    def _query(self) -> SignalReading:
        try:
            output = _run(["pmset", "-g"], self.timeout)
        except FileNotFoundError:
            summary = self._battery_summary()
        else:
            summary = "\n".join(output.splitlines()[: self.max_lines]).strip()
        if not summary:
            raise ProbeFailure("empty power summary")
        return SignalReading(value=summary, available=True, raw=summary)

    @staticmethod
    def _battery_summary() -> str:
        sensors_battery = getattr(psutil, "sensors_battery", None)
        battery = sensors_battery() if sensors_battery else None
        if battery is None:
            raise ProbeFailure("no pmset and no battery information")
        source = "AC Power" if battery.power_plugged else "Battery Power"
        return f"{battery.percent:.0f}%; {source}"


def default_sources(timeout: float = DEFAULT_TIMEOUT) -> list[SignalSource]:
    """Return one source per signal, in snapshot order."""
    return [
        IdleDurationSource(timeout),
        DisplayPowerSource(timeout),
        BrightnessSource(timeout),
        DisplayCountSource(timeout),
        PowerSummarySource(timeout),
    ]
