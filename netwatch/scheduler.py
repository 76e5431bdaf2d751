"""Fixed-interval sampling scheduler that never overlaps sample cycles."""

import logging

from PySide6.QtCore import QObject, QThreadPool, QTimer, Signal

from netwatch.sampler import TelemetrySampler
from netwatch.workers import SampleWorker

logger = logging.getLogger(__name__)


class SamplingScheduler(QObject):
    """Drives a TelemetrySampler from a QTimer.

    Key features:
    - One sample cycle in flight at a time; ticks that fire while a cycle is
      still running are skipped, not queued
    - Cycles run on a dedicated single-thread pool, off the Qt main thread
    - Generation IDs discard results of cycles started before a stop
    - Consecutive failures are counted and reported once they reach the
      configured threshold

    Thread-safe: All state access on Qt main thread via signals/slots.
    """

    # Signals
    update_ready = Signal(object)  # SampleResult
    sample_failed = Signal(str)  # failure reason
    failure_streak = Signal(int)  # consecutive failures, emitted at/after threshold

    def __init__(
        self,
        sampler: TelemetrySampler,
        interval_ms: int | None = None,
        failure_warning_threshold: int | None = None,
        parent=None,
    ):
        """Initialize the scheduler.

        Args:
            sampler: TelemetrySampler to run every tick
            interval_ms: Sampling interval in milliseconds (default from sampler config)
            failure_warning_threshold: Consecutive failures before warning
                (default from sampler config)
            parent: Qt parent object
        """
        super().__init__(parent)

        self.sampler = sampler
        self.interval_ms = interval_ms if interval_ms is not None else sampler.config.poll_interval_ms
        self.failure_warning_threshold = (
            failure_warning_threshold
            if failure_warning_threshold is not None
            else sampler.config.failure_warning_threshold
        )

        self._in_flight = False
        self._generation_id = 0
        self._skipped_ticks = 0
        self.consecutive_failures = 0

        # Threading: a single worker thread keeps cycles strictly sequential
        self.thread_pool = QThreadPool(self)
        self.thread_pool.setMaxThreadCount(1)

        # Timer for periodic sampling
        self.timer = QTimer(self)
        self.timer.timeout.connect(self._schedule_tick)

        # Monitoring state
        self.is_monitoring = False

    def start_monitoring(self, immediate: bool = True):
        """Start periodic sampling.

        Args:
            immediate: Run the first cycle now instead of after one interval
        """
        if self.is_monitoring:
            return

        self.is_monitoring = True
        self.timer.start(self.interval_ms)
        logger.info("Monitoring started: interval=%dms", self.interval_ms)

        if immediate:
            self._schedule_tick()

    def stop_monitoring(self):
        """Stop sampling and invalidate the in-flight cycle, if any."""
        if not self.is_monitoring:
            return

        self.is_monitoring = False
        self.timer.stop()
        self._generation_id += 1  # Invalidate in-flight worker
        logger.info("Monitoring stopped (generation_id=%d)", self._generation_id)

    def set_interval(self, interval_ms: int):
        """Update sampling interval.

        Args:
            interval_ms: New interval in milliseconds
        """
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")

        self.interval_ms = interval_ms
        if self.timer.isActive():
            self.timer.setInterval(interval_ms)
        logger.debug("Interval updated: %dms", interval_ms)

    def _schedule_tick(self):
        """Handle timer tick: start a cycle unless one is still running."""
        if not self.is_monitoring:
            return

        if self._in_flight:
            self._skipped_ticks += 1
            logger.debug("Tick skipped: previous sample still running (skipped=%d)", self._skipped_ticks)
            return

        self._in_flight = True
        worker = SampleWorker(self.sampler, self._generation_id)
        worker.signals.sample_ready.connect(self._on_sample_ready)
        worker.signals.sample_failed.connect(self._on_sample_failed)
        worker.signals.error.connect(self._on_worker_error)
        worker.signals.finished.connect(self._on_sample_finished)

        self.thread_pool.start(worker)

    def _is_stale(self, generation_id: int) -> bool:
        if generation_id != self._generation_id:
            logger.debug(
                "Ignoring stale result: generation_id=%d (current=%d)",
                generation_id,
                self._generation_id,
            )
            return True
        return not self.is_monitoring

    def _on_sample_ready(self, result, generation_id):
        """Forward a successful sample and reset the failure streak."""
        if self._is_stale(generation_id):
            return

        if self.consecutive_failures:
            logger.info("Sampling recovered after %d failed ticks", self.consecutive_failures)
        self.consecutive_failures = 0
        self.update_ready.emit(result)

    def _on_sample_failed(self, failure, generation_id):
        """Count a skipped tick; the next timer firing is the retry."""
        if self._is_stale(generation_id):
            return
        self._record_failure(failure.reason)

    def _on_worker_error(self, error_msg):
        """Handle an unexpected exception raised inside the worker."""
        logger.error("Sampling error: %s", error_msg)
        if self.is_monitoring:
            self._record_failure(error_msg)

    def _record_failure(self, reason: str):
        self.consecutive_failures += 1
        self.sample_failed.emit(reason)

        if self.consecutive_failures >= self.failure_warning_threshold:
            logger.warning(
                "Sampling has failed %d times in a row: %s",
                self.consecutive_failures,
                reason,
            )
            self.failure_streak.emit(self.consecutive_failures)

    def _on_sample_finished(self):
        """Handle worker completion - clear in-flight flag."""
        self._in_flight = False

    def get_stats(self):
        """Get scheduler statistics.

        Returns:
            Dict with scheduler state info
        """
        return {
            "interval_ms": self.interval_ms,
            "in_flight": self._in_flight,
            "monitoring": self.is_monitoring,
            "generation_id": self._generation_id,
            "skipped_ticks": self._skipped_ticks,
            "consecutive_failures": self.consecutive_failures,
        }
