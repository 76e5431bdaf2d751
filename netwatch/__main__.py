"""Entry point for the NetWatch telemetry service."""

import logging
import os
import signal
import sys

from PySide6.QtCore import QCoreApplication, QTimer

from netwatch.config import SamplerConfig
from netwatch.fake_provider import FakeProvider
from netwatch.logging_config import configure_logging
from netwatch.sampler import TelemetrySampler
from netwatch.scheduler import SamplingScheduler
from netwatch.server import TelemetryBroadcaster
from netwatch.sinks import FanOutAlertSink, LoggingAlertSink

# Configure logging early
configure_logging()
logger = logging.getLogger(__name__)


def select_provider(config: SamplerConfig):
    """Pick the psutil provider, falling back to simulated data.

    Returns:
        Tuple of (provider, fallback reason or None)
    """
    if os.environ.get("NETWATCH_PROVIDER", "").strip().lower() == "fake":
        logger.info("Fake provider explicitly requested via environment variable")
        return FakeProvider(), "NETWATCH_PROVIDER=fake"

    # Step 1: Try importing the module (psutil may be missing)
    try:
        from netwatch.provider import PsutilProvider
        import psutil
    except ImportError as e:
        logger.warning("PsutilProvider unavailable: %s", e)
        return FakeProvider(), f"import failed: {e}"

    # Step 2: Try instantiating and probing it once
    try:
        provider = PsutilProvider(timeout_ms=config.provider_timeout_ms)
        provider.current_counters()
    except ValueError as e:
        logger.error("PsutilProvider configuration invalid: %s", e)
        return FakeProvider(), f"configuration error: {e}"
    except (PermissionError, OSError, psutil.Error) as e:
        logger.warning("System counters unavailable: %s", e)
        return FakeProvider(), f"system error: {e}"

    logger.info("PsutilProvider initialized successfully")
    return provider, None


def main():
    """Main entry point for the NetWatch service."""
    app = QCoreApplication(sys.argv)

    try:
        config = SamplerConfig.from_env()
    except ValueError as e:
        logger.error("Invalid configuration: %s", e)
        return 2

    provider, fallback_reason = select_provider(config)
    if fallback_reason:
        logger.warning("Using simulated data (%s)", fallback_reason)

    broadcaster = TelemetryBroadcaster(host=config.host, port=config.port)
    try:
        broadcaster.start()
    except OSError as e:
        logger.error("%s", e)
        return 1

    sampler = TelemetrySampler(
        provider,
        sink=FanOutAlertSink(LoggingAlertSink(), broadcaster),
        config=config,
    )
    scheduler = SamplingScheduler(sampler)
    scheduler.update_ready.connect(broadcaster.publish_update)

    def shutdown(*_):
        scheduler.stop_monitoring()
        broadcaster.close()
        app.quit()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)
    # Python signal handlers only run between bytecodes, so wake the interpreter
    signal_timer = QTimer()
    signal_timer.timeout.connect(lambda: None)
    signal_timer.start(250)

    scheduler.start_monitoring()
    exit_code = app.exec()
    scheduler.thread_pool.waitForDone(config.provider_timeout_ms)
    sampler.close()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
