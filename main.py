from __future__ import annotations

import json
import signal
import threading
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer

from sediment_watch.config import Thresholds, load_config
from sediment_watch.core.alerts import ALERT_MESSAGES, build_insight, status_label
from sediment_watch.core.ingest import IngestionController, RangeSelector, Snapshot
from sediment_watch.data.rest_store import RestReadingStore
from sediment_watch.utils.logging import setup_logging


app = typer.Typer(add_completion=False)


def _summary(snap: Snapshot, th: Thresholds) -> str:
    s, acc = snap.stats, snap.accumulation
    eta = "stable" if acc.days_to_clog is None else f"{acc.days_to_clog}d"
    return (
        f"[{snap.alert.value.upper()}] latest={s.latest:g} NTU ({status_label(s.latest, th)}) "
        f"avg={s.average:g} max={s.highest:g} trend={s.trend.value} "
        f"rate={acc.rate}/h clog={eta} stability={acc.stability_index}% new={snap.new_readings}"
    )


@app.command()
def run(
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    range_: str = typer.Option("today", "--range", help="today | week | month"),
    log_level: Optional[str] = typer.Option(None),
) -> None:
    """Full refresh, then poll for new readings until interrupted."""
    cfg = load_config(config)
    setup_logging(log_level or cfg.env.LOG_LEVEL)

    def show(snap: Snapshot) -> None:
        typer.echo(_summary(snap, cfg.runtime.thresholds))
        typer.echo(f"  {ALERT_MESSAGES[snap.alert]} | {build_insight(snap, cfg.runtime.thresholds)}")

    controller = IngestionController(cfg, RestReadingStore(cfg), on_snapshot=show)
    stop_event = threading.Event()

    def handle_signal(signum, frame):  # noqa: ANN001, D401
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    if not controller.full_refresh(RangeSelector(range_)):
        typer.echo(f"Initial refresh failed: {controller.status().error}")
    controller.set_live(True)
    controller.start()
    typer.echo("Running. Press Ctrl+C to stop.")
    try:
        while not stop_event.is_set():
            stop_event.wait(timeout=0.5)
    finally:
        controller.stop()


@app.command()
def snapshot(
    config: Optional[Path] = typer.Option(None, help="Path to config.yaml"),
    range_: str = typer.Option("today", "--range", help="today | week | month"),
) -> None:
    """Run one full refresh and print the snapshot as JSON."""
    cfg = load_config(config)
    setup_logging("WARNING")
    controller = IngestionController(cfg, RestReadingStore(cfg))
    if not controller.full_refresh(RangeSelector(range_)):
        typer.echo(json.dumps({"error": controller.status().error}))
        raise typer.Exit(code=1)
    snap = controller.snapshot()
    payload = asdict(snap)
    payload["window_size"] = len(snap.window)
    payload.pop("window")
    payload["insight"] = build_insight(snap, cfg.runtime.thresholds)
    typer.echo(json.dumps(payload, default=str, indent=2))


if __name__ == "__main__":
    app()
