"""Command-line interface for the idle monitor."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from pathlib import Path
from typing import Optional

import typer

from .config import MonitorSettings
from .models import SignalKind

app = typer.Typer(help="Track active, idle and sleep time on this machine.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _load_settings(config_path: Optional[Path], **overrides: object) -> MonitorSettings:
    try:
        settings = MonitorSettings.from_toml(config_path) if config_path else MonitorSettings()
        return settings.updated(**overrides)
    except (OSError, ValueError) as exc:
        raise typer.BadParameter(str(exc)) from exc


@app.command()
def monitor(
    idle_threshold: Optional[float] = typer.Option(
        None,
        "--idle-threshold",
        min=1.0,
        help="Seconds without input before counting time as idle (default: 60).",
    ),
    check_interval: Optional[float] = typer.Option(
        None,
        "--check-interval",
        min=0.5,
        help="How often to check status in seconds (default: 5).",
    ),
    debug: bool = typer.Option(
        False, "--debug", "-d", help="Write periodic diagnostics to the debug log."
    ),
    debug_interval: Optional[float] = typer.Option(
        None,
        "--debug-interval",
        min=1.0,
        help="How often to write diagnostics in seconds (default: 30).",
    ),
    log_file: Optional[Path] = typer.Option(
        None, "--log-file", path_type=Path, help="Location of the activity log."
    ),
    debug_log_file: Optional[Path] = typer.Option(
        None, "--debug-log-file", path_type=Path, help="Location of the diagnostic log."
    ),
    config_path: Optional[Path] = typer.Option(
        None, "--config", path_type=Path, help="TOML file with monitor settings."
    ),
) -> None:
    """Monitor activity until interrupted, then print a session summary."""
    from .aggregator import SignalAggregator
    from .controller import SessionController
    from .probes import default_sources
    from .sinks import ActivityLog, ConsoleSink, DiagnosticLog, SinkWriteFailure

    settings = _load_settings(
        config_path,
        idle_threshold_seconds=idle_threshold,
        check_interval_seconds=check_interval,
        diagnostics_enabled=True if debug else None,
        diagnostic_interval_seconds=debug_interval,
        activity_log_path=log_file,
        diagnostic_log_path=debug_log_file,
    )

    try:
        activity_log = ActivityLog(settings.resolved_activity_log_path())
        diagnostic_log = (
            DiagnosticLog(settings.resolved_diagnostic_log_path())
            if settings.diagnostics_enabled
            else None
        )
        with activity_log, diagnostic_log or nullcontext():
            aggregator = SignalAggregator(default_sources(settings.probe_timeout.total_seconds()))
            controller = SessionController(
                settings=settings,
                aggregator=aggregator,
                activity_log=activity_log,
                console=ConsoleSink(),
                diagnostic_log=diagnostic_log,
            )
            controller.install_signal_handlers()
            controller.run()
    except (SinkWriteFailure, OSError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command()
def probe(
    idle_threshold: float = typer.Option(
        60.0, "--idle-threshold", min=1.0, help="Idle threshold used for the classification."
    ),
) -> None:
    """Sample every signal once and print the readings and the classified state."""
    from .aggregator import SignalAggregator
    from .classifier import classify

    settings = _load_settings(None, idle_threshold_seconds=idle_threshold)
    snapshot = SignalAggregator().sample()
    for kind in SignalKind:
        reading = snapshot.reading(kind)
        status = "ok" if reading.available else "unavailable"
        typer.echo(f"{kind.value:<15} {status:<12} {reading.value}")
    typer.echo(f"state           {classify(snapshot, None, settings.thresholds).display_name}")
