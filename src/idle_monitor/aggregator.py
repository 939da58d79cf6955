"""Collects one reading per signal into a snapshot."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, Optional

from .models import SignalKind, SignalReading, Snapshot
from .probes import SignalSource, default_sources

logger = logging.getLogger(__name__)

_FALLBACKS: dict[SignalKind, SignalReading] = {
    SignalKind.IDLE_DURATION: SignalReading(value=0, available=False),
    SignalKind.DISPLAY_POWER: SignalReading(value=None, available=False),
    SignalKind.BRIGHTNESS: SignalReading(value=None, available=False),
    SignalKind.DISPLAY_COUNT: SignalReading(value=None, available=False),
    SignalKind.POWER_SUMMARY: SignalReading(value="N/A", available=False),
}


class SignalAggregator:
    """Samples every source once, in order, and builds a Snapshot.

    Sources are queried sequentially so all readings describe the same tick.
    A kind with no registered source is reported as unavailable.
    """

    def __init__(
        self,
        sources: Optional[Iterable[SignalSource]] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._sources = list(sources) if sources is not None else default_sources()
        self._clock = clock
        kinds = [source.kind for source in self._sources]
        duplicates = {kind for kind in kinds if kinds.count(kind) > 1}
        if duplicates:
            names = ", ".join(sorted(kind.value for kind in duplicates))
            raise ValueError(f"More than one source registered for: {names}")

    @property
    def sources(self) -> list[SignalSource]:
        return list(self._sources)

    def sample(self) -> Snapshot:
        captured_at = self._clock()
        readings = dict(_FALLBACKS)
        for source in self._sources:
            readings[source.kind] = source.probe()
        unavailable = [kind.value for kind, reading in readings.items() if not reading.available]
        if unavailable:
            logger.debug("Signals unavailable this tick: %s", ", ".join(unavailable))
        return Snapshot(
            captured_at=captured_at,
            **{kind.value: reading for kind, reading in readings.items()},
        )
