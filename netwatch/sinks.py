"""Alert sinks: where the sampler pushes one-shot alerts."""

import logging
import threading
from typing import Protocol

from netwatch.models import Alert

logger = logging.getLogger(__name__)


class AlertSink(Protocol):
    """Protocol for receivers of alert events.

    ``emit_alert`` may be called from a worker thread and must not block.
    """

    def emit_alert(self, alert: Alert) -> None:
        ...


class LoggingAlertSink:
    """Writes every alert to the log at WARNING level."""

    def emit_alert(self, alert: Alert) -> None:
        logger.warning("Alert [%s]: %s", alert.kind.value, alert.message)


class ListAlertSink:
    """Collects alerts in memory."""

    def __init__(self):
        self._lock = threading.Lock()
        self.alerts: list[Alert] = []

    def emit_alert(self, alert: Alert) -> None:
        with self._lock:
            self.alerts.append(alert)

    def clear(self):
        with self._lock:
            self.alerts.clear()


class FanOutAlertSink:
    """Forwards each alert to several sinks; one failing sink does not starve the rest."""

    def __init__(self, *sinks: AlertSink):
        self.sinks = list(sinks)

    def emit_alert(self, alert: Alert) -> None:
        for sink in self.sinks:
            try:
                sink.emit_alert(alert)
            except Exception:
                logger.exception("Alert sink %r failed", sink)
