from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from feewatch.alerts.formatting import render
from feewatch.alerts.notifiers import Notifier
from feewatch.notify.queue import NotifyQueue
from feewatch.utils.errors import FetchError, SendError
from feewatch.utils.types import AlertEvent, AlerterSnapshot, Metric, MetricSource, Side

log = structlog.get_logger("alerter")


@dataclass(slots=True, frozen=True)
class AlerterConfig:
    threshold: int = 2                # sat/vB
    poll_interval_s: float = 300.0    # 5 minutes
    fetch_on_start: bool = False      # skip the wait before the first tick


class ThresholdAlerter:
    """
    Turns a stream of metric samples into one alert per threshold crossing.

    State machine (observe):
      UNSET --any--> BELOW|ABOVE           (no event: nothing to cross from)
      BELOW --metric >  threshold--> ABOVE (event)
      ABOVE --metric <= threshold--> BELOW (event)
      same side                            (no event)

    Poll loop (run): wait interval -> fetch -> observe -> notify, strictly
    sequential. FetchError skips the tick, SendError is logged; neither
    touches state. Only the loop task mutates state; other tasks read
    snapshot() or consume the optional `events` queue.

    Usage:
        alerter = ThresholdAlerter(threshold=2, poll_interval_s=300)
        await alerter.start(source, notifier)
        ...
        await alerter.stop()
    """

    def __init__(
        self,
        threshold: int,
        poll_interval_s: float,
        *,
        fetch_on_start: bool = False,
        events: Optional[NotifyQueue] = None,
        format_fn: Optional[Callable[[AlertEvent], str]] = None,
    ):
        self.threshold = threshold
        self.poll_interval_s = poll_interval_s
        self.fetch_on_start = fetch_on_start
        self.events = events
        self._format_fn = format_fn or render

        self.state: Side = Side.UNSET
        self._last_metric: Optional[Metric] = None
        self._last_ok_ts: Optional[float] = None
        self._ticks = 0
        self._fetch_failures = 0
        self._send_failures = 0
        self._events_emitted = 0

        self._stop = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, cfg: AlerterConfig, **kwargs) -> "ThresholdAlerter":
        return cls(
            cfg.threshold,
            cfg.poll_interval_s,
            fetch_on_start=cfg.fetch_on_start,
            **kwargs,
        )

    # ---------------------------- state machine ---------------------------- #

    def classify(self, metric: Metric) -> Side:
        return Side.BELOW if metric <= self.threshold else Side.ABOVE

    def observe(self, metric: Metric, ts: Optional[float] = None) -> Optional[AlertEvent]:
        side = self.classify(metric)
        prev = self.state
        self._last_metric = metric
        if prev is Side.UNSET:
            self.state = side
            return None
        if side is prev:
            return None
        self.state = side
        return AlertEvent(
            side=side,
            metric=metric,
            threshold=self.threshold,
            previous=prev,
            ts=time.time() if ts is None else ts,
        )

    def snapshot(self) -> AlerterSnapshot:
        return AlerterSnapshot(
            state=self.state,
            threshold=self.threshold,
            last_metric=self._last_metric,
            last_ok_ts=self._last_ok_ts,
            ticks=self._ticks,
            fetch_failures=self._fetch_failures,
            send_failures=self._send_failures,
            events_emitted=self._events_emitted,
        )

    # ---------------------------- task handle ---------------------------- #

    async def start(self, source: MetricSource, notifier: Notifier) -> asyncio.Task:
        self._stop.clear()
        self._task = asyncio.create_task(
            self.run(source, notifier, self._stop), name="threshold-alerter"
        )
        return self._task

    def request_stop(self) -> None:
        """Signal-handler safe: just sets the stop event."""
        self._stop.set()

    async def stop(self, timeout_s: float = 5.0) -> None:
        self._stop.set()
        if self._task is None:
            return
        if self._task.done():
            # a crash already surfaced through wait(); stop() only releases
            if not self._task.cancelled() and self._task.exception() is not None:
                log.warning("alerter_task_failed", err=repr(self._task.exception()))
            self._task = None
            return
        try:
            await asyncio.wait_for(asyncio.shield(self._task), timeout=timeout_s)
        except asyncio.TimeoutError:
            log.warning("alerter_stop_timeout", timeout_s=timeout_s)
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None

    async def wait(self) -> None:
        if self._task is not None:
            await self._task

    # ---------------------------- poll loop ---------------------------- #

    async def run(
        self,
        source: MetricSource,
        notifier: Notifier,
        stop: Optional[asyncio.Event] = None,
    ) -> None:
        stop = stop or self._stop
        log.info(
            "alerter_started",
            threshold=self.threshold,
            poll_interval_s=self.poll_interval_s,
        )
        first = True
        while not stop.is_set():
            if not (first and self.fetch_on_start):
                if await self._sleep_or_stop(stop):
                    break
            first = False
            await self._tick(source, notifier, stop)
        log.info("alerter_stopped", state=self.state.value)

    async def _sleep_or_stop(self, stop: asyncio.Event) -> bool:
        """Wait one interval. True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(stop.wait(), timeout=self.poll_interval_s)
            return True
        except asyncio.TimeoutError:
            return False

    async def _fetch_or_stop(self, source: MetricSource, stop: asyncio.Event):
        """
        Race source.fetch() against stop. Returns (stopped, metric).
        FetchError propagates to the caller.
        """
        fetch = asyncio.ensure_future(source.fetch())
        stopper = asyncio.ensure_future(stop.wait())
        try:
            await asyncio.wait({fetch, stopper}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            fetch.cancel()
            raise
        finally:
            stopper.cancel()
        if not fetch.done():
            fetch.cancel()
            try:
                await fetch
            except (asyncio.CancelledError, FetchError):
                pass
            return True, None
        return False, fetch.result()

    async def _tick(self, source: MetricSource, notifier: Notifier, stop: asyncio.Event) -> None:
        self._ticks += 1
        try:
            stopped, metric = await self._fetch_or_stop(source, stop)
        except FetchError as e:
            self._fetch_failures += 1
            log.warning("fetch_failed", kind=type(e).__name__, err=str(e), state=self.state.value)
            return
        if stopped:
            log.info("tick_abandoned_on_stop")
            return

        self._last_ok_ts = time.time()
        evt = self.observe(metric)
        log.debug("metric_observed", metric=metric, state=self.state.value)
        if evt is None:
            return

        self._events_emitted += 1
        if self.events is not None and not self.events.try_put(evt):
            log.info("events_queue_full_drop", side=evt.side.value)

        text = self._format_fn(evt)
        try:
            await notifier.notify(text)
        except SendError as e:
            # the crossing stands; the next tick will not re-report it
            self._send_failures += 1
            log.warning("notify_failed", err=str(e), status=e.status, side=evt.side.value)
            return
        log.info("alert_sent", side=evt.side.value, metric=evt.metric, threshold=self.threshold)
