"""Worker classes for background sampling tasks."""

import logging

from PySide6.QtCore import QObject, QRunnable, Signal

from netwatch.models import SampleFailure
from netwatch.sampler import TelemetrySampler

logger = logging.getLogger(__name__)


class WorkerSignals(QObject):
    """Signals for communicating between worker threads and main thread."""

    sample_ready = Signal(object, int)  # Emits (SampleResult, generation_id)
    sample_failed = Signal(object, int)  # Emits (SampleFailure, generation_id)
    error = Signal(str)  # Emits message of an unexpected exception
    finished = Signal()  # Emits when worker completes


class SampleWorker(QRunnable):
    """Worker that executes sampler.sample() in background thread."""

    def __init__(self, sampler: TelemetrySampler, generation_id: int):
        super().__init__()
        self.sampler = sampler
        self.generation_id = generation_id
        self.signals = WorkerSignals()

    def run(self):
        """Execute one sample cycle in background thread."""
        try:
            logger.debug("Worker starting: generation_id=%d", self.generation_id)

            # Provider calls may be slow (connection tables can be large)
            outcome = self.sampler.sample()

            if isinstance(outcome, SampleFailure):
                self.signals.sample_failed.emit(outcome, self.generation_id)
                logger.debug(
                    "Worker completed with failure: generation_id=%d, reason=%s",
                    self.generation_id,
                    outcome.reason,
                )
            else:
                self.signals.sample_ready.emit(outcome, self.generation_id)
                logger.debug(
                    "Worker completed: generation_id=%d, connections=%d, alerts=%d",
                    self.generation_id,
                    len(outcome.connections),
                    len(outcome.alerts),
                )

        except Exception as e:
            logger.exception(
                "Worker exception: generation_id=%d, error=%s",
                self.generation_id,
                str(e),
            )
            self.signals.error.emit(str(e))

        finally:
            # Always signal completion
            self.signals.finished.emit()
