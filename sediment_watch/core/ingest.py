from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Tuple

from ..config import AppConfig
from ..data.store import ReadingStore, Row, StoreError
from .accumulation import AccumulationMetrics, RatePoint, compute_accumulation, rate_series
from .alerts import AlertLevel, RiskAssessment, assess_risk, classify_alert
from .distribution import DistributionBins, bin_values
from .stats import StatisticsEngine, StatsSnapshot
from .window import InvariantViolation, Reading, WindowBuffer


logger = logging.getLogger(__name__)


class RangeSelector(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"

    def start(self, now: datetime) -> datetime:
        if self is RangeSelector.TODAY:
            local = now.astimezone()
            return local.replace(hour=0, minute=0, second=0, microsecond=0)
        if self is RangeSelector.WEEK:
            return now - timedelta(days=7)
        return now - timedelta(days=30)


@dataclass(frozen=True)
class Snapshot:
    """Read-only view published after every successful update."""

    window: Tuple[Reading, ...]
    stats: StatsSnapshot
    accumulation: AccumulationMetrics
    distribution: DistributionBins
    alert: AlertLevel
    risk: RiskAssessment
    last_update: Optional[datetime]
    range: RangeSelector
    new_readings: int = 0
    calibration_warning: bool = False
    rate_series: Tuple[RatePoint, ...] = ()


@dataclass(frozen=True)
class IngestStatus:
    loading: bool = False
    error: Optional[str] = None
    last_attempt: Optional[datetime] = None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    ts = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


def sanitize_rows(
    rows: Iterable[Row],
    invert: bool = False,
    sensor_max: float = 3000.0,
    after: Optional[Reading] = None,
) -> List[Reading]:
    """Turn store rows into readings, dropping anything malformed.

    Rows must arrive in ascending order. A row is dropped when its id, value
    or timestamp cannot be parsed, when its value is not finite, or when its
    id or timestamp goes backwards relative to the last kept row. `after` is
    the newest reading already held; rows stamped before it are dropped too.
    Ids at or below `after.id` are left for the window to reject.
    """
    kept: List[Reading] = []
    floor_ts = after.timestamp if after is not None else None
    dropped = 0
    for row in rows:
        try:
            raw_id = row["id"]
            if isinstance(raw_id, bool) or float(raw_id) != int(raw_id):
                raise ValueError(f"non-integer id {raw_id!r}")
            rid = int(raw_id)
            if isinstance(row["value"], bool):
                raise ValueError("boolean value")
            raw = float(row["value"])
            ts = _parse_timestamp(row["created_at"])
        except (KeyError, TypeError, ValueError, OverflowError):
            dropped += 1
            continue
        if not math.isfinite(raw):
            dropped += 1
            continue
        if kept and (rid <= kept[-1].id or ts < kept[-1].timestamp):
            dropped += 1
            continue
        if floor_ts is not None and ts < floor_ts:
            dropped += 1
            continue
        value = sensor_max - raw if invert else raw
        kept.append(Reading(id=rid, value=value, timestamp=ts, raw_value=raw))
    if dropped:
        logger.warning("dropped malformed readings", extra={"dropped": dropped, "kept": len(kept)})
    return kept


class IngestionController:
    """Owns the window, the cursor and the published snapshot.

    `full_refresh` replaces the window with the newest readings of a time
    range; `incremental_poll` appends whatever arrived after the cursor. Only
    one of them runs at a time: a call made while another is in flight is
    dropped and returns False. Store calls happen outside the state lock, and
    a result that does not move the cursor forward is discarded on apply.
    """

    def __init__(
        self,
        config: AppConfig,
        store: ReadingStore,
        on_snapshot: Optional[Callable[[Snapshot], None]] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.config = config
        self.store = store
        self.on_snapshot = on_snapshot
        self._clock = clock
        rt = config.runtime
        self._window = WindowBuffer(rt.window_capacity)
        self._stats = StatisticsEngine(trend_lookback=rt.trend_lookback)
        self._cursor = 0
        self._range = RangeSelector(rt.default_range)
        self._inflight = threading.Lock()
        self._state_lock = threading.RLock()
        self._status = IngestStatus()
        self._snapshot = self._build_snapshot(self._stats.current(), None, 0)
        self._live = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    # ───────────────────────────── accessors ─────────────────────────────
    def snapshot(self) -> Snapshot:
        with self._state_lock:
            return self._snapshot

    def status(self) -> IngestStatus:
        with self._state_lock:
            return self._status

    @property
    def cursor(self) -> int:
        with self._state_lock:
            return self._cursor

    @property
    def live(self) -> bool:
        return self._live.is_set()

    # ───────────────────────────── commands ─────────────────────────────
    def set_live(self, live: bool) -> None:
        # Pausing only stops future polls; a fetch already issued still applies
        if live:
            self._live.set()
        else:
            self._live.clear()
        logger.info("live updates %s", "enabled" if live else "paused")

    def manual_refresh(self) -> bool:
        return self.full_refresh(None)

    def full_refresh(self, selector: Optional[RangeSelector | str] = None) -> bool:
        if not self._inflight.acquire(blocking=False):
            logger.debug("full refresh dropped, fetch already in flight")
            return False
        try:
            with self._state_lock:
                if selector is not None:
                    self._range = RangeSelector(selector)
                selected = self._range
            self._begin_attempt()
            rt = self.config.runtime
            try:
                rows = self.store.fetch_range(
                    selected.start(self._clock()), None, limit=rt.window_capacity, descending=True
                )
            except StoreError as exc:
                logger.error("full refresh failed", extra={"range": selected.value, "error": str(exc)})
                self._finish_attempt("Failed to fetch data from store")
                return False

            readings = sanitize_rows(reversed(list(rows)), rt.invert_values, rt.sensor_max)
            if not readings:
                logger.info("no readings for range", extra={"range": selected.value})
                self._finish_attempt("No data found for selected range")
                return False
            self._check_calibration(readings)

            with self._state_lock:
                if readings[-1].id < self._cursor:
                    logger.info(
                        "discarding stale full refresh",
                        extra={"fetched_max_id": readings[-1].id, "cursor": self._cursor},
                    )
                    self._status = replace(self._status, loading=False)
                    return False
                self._window.replace(readings)
                self._cursor = self._window.max_id() or self._cursor
                stats = self._stats.recompute(self._window.values())
                snap = self._build_snapshot(stats, self._clock(), 0)
                self._snapshot = snap
                self._status = replace(self._status, loading=False, error=None)
            logger.info(
                "full refresh applied",
                extra={"range": selected.value, "readings": len(snap.window), "cursor": self._cursor},
            )
        finally:
            self._inflight.release()
        self._emit(snap)
        return True

    def incremental_poll(self) -> bool:
        if not self._inflight.acquire(blocking=False):
            logger.debug("poll dropped, fetch already in flight")
            return False
        try:
            with self._state_lock:
                since = self._cursor
                newest = self._window.tail(1)
            try:
                latest_id = self.store.fetch_latest_id()
                if latest_id is None or latest_id <= since:
                    return False
                self._begin_attempt()
                rows = self.store.fetch_since(since)
            except StoreError as exc:
                logger.error("incremental poll failed", extra={"cursor": since, "error": str(exc)})
                self._finish_attempt("Failed to fetch new readings from store")
                return False

            rt = self.config.runtime
            readings = sanitize_rows(
                rows, rt.invert_values, rt.sensor_max, after=newest[0] if newest else None
            )
            with self._state_lock:
                self._status = replace(self._status, loading=False)
                if not readings or readings[-1].id <= self._cursor:
                    return False
                try:
                    evicted = self._window.append(readings)
                except InvariantViolation as exc:
                    logger.warning("rejected out-of-order batch", extra={"error": str(exc)})
                    self._status = replace(self._status, error=str(exc))
                    return False
                self._cursor = readings[-1].id
                stats = self._stats.update(
                    [r.value for r in readings],
                    [r.value for r in evicted],
                    self._window.values(),
                )
                snap = self._build_snapshot(stats, self._clock(), len(readings))
                self._snapshot = snap
                self._status = replace(self._status, error=None)
            logger.debug("appended readings", extra={"count": len(readings), "cursor": self._cursor})
        finally:
            self._inflight.release()
        self._emit(snap)
        return True

    # ───────────────────────────── scheduling ─────────────────────────────
    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="IngestionPoller", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=5)

    def _run(self) -> None:
        interval = self.config.runtime.poll_interval_sec
        while not self._stop.wait(timeout=interval):
            if not self._live.is_set():
                continue
            try:
                self.incremental_poll()
            except Exception:  # noqa: BLE001
                logger.exception("unexpected error during live poll")

    # ───────────────────────────── internals ─────────────────────────────
    def _build_snapshot(
        self, stats: StatsSnapshot, when: Optional[datetime], new_readings: int
    ) -> Snapshot:
        rt = self.config.runtime
        th = rt.thresholds
        window = self._window.snapshot()
        lookback = min(rt.accumulation_lookback, max(0, len(window) - 1))
        acc = compute_accumulation(self._window.tail(lookback + 1), th.critical, lookback)
        alert = classify_alert(stats.latest, stats.average, stats.trend, th)
        return Snapshot(
            window=tuple(window),
            stats=replace(stats, average=float(round(stats.average))),
            accumulation=replace(acc, rate=round(acc.rate, 2)),
            distribution=bin_values((r.value for r in window), th),
            alert=alert,
            risk=assess_risk(alert, stats.latest, th),
            last_update=when,
            range=self._range,
            new_readings=new_readings,
            calibration_warning=stats.latest > rt.calibration_limit,
            rate_series=tuple(rate_series(window)),
        )

    def _check_calibration(self, readings: List[Reading]) -> None:
        raw = [r.raw_value if r.raw_value is not None else r.value for r in readings]
        avg = sum(raw) / len(raw)
        if avg > self.config.runtime.calibration_limit:
            logger.warning("sensor calibration warning", extra={"raw_average": round(avg, 1)})

    def _begin_attempt(self) -> None:
        with self._state_lock:
            self._status = replace(self._status, loading=True, last_attempt=self._clock())

    def _finish_attempt(self, error: Optional[str]) -> None:
        with self._state_lock:
            self._status = replace(self._status, loading=False, error=error)

    def _emit(self, snap: Snapshot) -> None:
        if self.on_snapshot is None:
            return
        try:
            self.on_snapshot(snap)
        except Exception:  # noqa: BLE001
            logger.exception("snapshot subscriber failed")
