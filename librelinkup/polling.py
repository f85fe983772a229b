# -*- coding: utf-8 -*-

import logging
import threading
import time
from typing import Callable, List, Optional

from .glucose import average_readings
from .logs import get_logger
from .models import Reading, ReadResult

# sink(average, window, history)
Sink = Callable[[Reading, List[Reading], List[Reading]], None]


def next_deadline(start: float, now: float, period_s: float) -> float:
    """First start + k*period_s strictly after now; ticks missed by a slow read are dropped."""
    return start + ((now - start) // period_s + 1) * period_s


class AveragingWindow:
    """Readings collected since the last average, unique by timestamp."""

    def __init__(self):
        self._readings: List[Reading] = []

    def __len__(self) -> int:
        return len(self._readings)

    @property
    def readings(self) -> List[Reading]:
        return list(self._readings)

    def add(self, reading: Reading) -> bool:
        if any(r.timestamp == reading.timestamp for r in self._readings):
            return False
        self._readings.append(reading)
        return True

    def drain(self) -> List[Reading]:
        out, self._readings = self._readings, []
        return out


class PollingEngine:
    """
    Calls read() every interval_s seconds and hands an averaged reading to
    the sink whenever target_count distinct readings have been seen.

    A failing read is logged and skipped; the loop only ends when its handle
    is cancelled. The sink runs on the polling thread.
    """

    def __init__(
        self,
        read: Callable[[], ReadResult],
        target_count: int,
        interval_s: float,
        sink: Sink,
        logger: Optional[logging.Logger] = None,
        on_stop: Optional[Callable[[], None]] = None,
    ):
        if target_count < 1:
            raise ValueError(f"target_count must be >= 1, got {target_count}")
        if interval_s <= 0:
            raise ValueError(f"interval_s must be > 0, got {interval_s}")

        self.read = read
        self.target_count = target_count
        self.interval_s = interval_s
        self.sink = sink
        self.log = logger or get_logger()
        self.on_stop = on_stop

        self.window = AveragingWindow()
        self.tick_count = 0
        self.error_count = 0
        self.emit_count = 0
        self.last_error = ""

    def tick(self) -> Optional[Reading]:
        self.tick_count += 1
        try:
            result = self.read()
        except Exception as ex:
            self.error_count += 1
            self.last_error = str(ex)[:300]
            self.log.warning("[poll] read failed (tick %d): %s", self.tick_count, ex)
            return None
        return self.process(result)

    def process(self, result: ReadResult) -> Optional[Reading]:
        current = result.current
        if not self.window.add(current):
            self.log.debug("[poll] duplicate reading at %s skipped", current.timestamp.isoformat())

        if len(self.window) < self.target_count:
            return None

        average = average_readings(self.window.readings, current)
        collected = self.window.drain()
        self.emit_count += 1
        self.log.debug(
            "[poll] average value=%s trend=%s over %d readings",
            average.value, average.trend.value, len(collected),
        )

        try:
            self.sink(average, collected, list(result.history))
        except Exception as ex:
            self.log.error("[poll] sink failed: %s", ex)
        return average

    def run(self, stop: threading.Event):
        self.log.info("[poll] start target_count=%d interval=%ss", self.target_count, self.interval_s)
        start = time.monotonic()
        try:
            while not stop.is_set():
                self.tick()
                now = time.monotonic()
                if stop.wait(next_deadline(start, now, self.interval_s) - now):
                    break
        finally:
            self.log.info("[poll] stopped after %d ticks (%d errors)", self.tick_count, self.error_count)
            if self.on_stop is not None:
                self.on_stop()

    def start(self) -> "PollingHandle":
        stop = threading.Event()
        thread = threading.Thread(
            target=self.run,
            args=(stop,),
            name="librelinkup-poll",
            daemon=True,
        )
        handle = PollingHandle(self, thread, stop)
        thread.start()
        return handle


class PollingHandle:
    """
    Handle of a running PollingEngine. cancel() stops further ticks; a read
    already in flight is allowed to finish and nothing is flushed.
    """

    def __init__(self, engine: PollingEngine, thread: threading.Thread, stop: threading.Event):
        self.engine = engine
        self._thread = thread
        self._stop = stop

    def cancel(self):
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def is_running(self) -> bool:
        return self._thread.is_alive()

    def join(self, timeout: Optional[float] = None) -> bool:
        self._thread.join(timeout)
        return not self._thread.is_alive()
