"""Telemetry sampler: turns consecutive provider snapshots into rates and alerts.

Each call to ``TelemetrySampler.sample()`` is one poll:

1. Fetch counters, connections and interface configuration from the
   provider concurrently. All three must succeed within the timeout or the
   poll fails and nothing is mutated.
2. Validate and reduce them (counter totals, established connections, the
   flattened DNS server list).
3. Commit: compute rates against the previous counters, grow the
   known-apps/known-hosts sets and diff the DNS baseline.
4. Push any alerts to the sink and return the result.

The first successful poll is the warm-up. It seeds every baseline and
never raises an alert.
"""

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait

from netwatch.config import SamplerConfig
from netwatch.errors import DegenerateTiming, MalformedSnapshot, ProviderUnavailable, SamplerError
from netwatch.models import (
    ESTABLISHED,
    UNKNOWN_PROCESS,
    Alert,
    AlertKind,
    ConnectionRecord,
    CounterSnapshot,
    RateResult,
    SampleFailure,
    SampleResult,
)
from netwatch.sinks import AlertSink

logger = logging.getLogger(__name__)


def _wall_clock_ms() -> float:
    return time.time() * 1000.0


def compute_rates(previous: CounterSnapshot, current: CounterSnapshot) -> RateResult:
    """Compute throughput between two snapshots (pure function).

    Decreasing counters (reset or wraparound) yield a rate of zero rather
    than a negative one.

    Args:
        previous: Baseline snapshot
        current: Snapshot taken this poll

    Returns:
        RateResult in bytes per second

    Raises:
        DegenerateTiming: If no time elapsed between the snapshots
    """
    elapsed_sec = (current.taken_at_ms - previous.taken_at_ms) / 1000.0
    if elapsed_sec <= 0:
        raise DegenerateTiming(elapsed_sec)

    return RateResult(
        rx_bytes_per_sec=(current.total_rx_bytes - previous.total_rx_bytes) / elapsed_sec,
        tx_bytes_per_sec=(current.total_tx_bytes - previous.total_tx_bytes) / elapsed_sec,
    )


def _is_byte_count(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_optional(value, kind) -> bool:
    return value is None or isinstance(value, kind)


def _is_optional_int(value) -> bool:
    return value is None or (isinstance(value, int) and not isinstance(value, bool))


class TelemetrySampler:
    """Stateful differencing and alerting core.

    Owns the previous counter snapshot, the known-apps and known-hosts
    identity sets, the DNS baseline and the warm-up flag. Identity sets only
    ever grow. ``sample()`` is serialized by an internal lock, so a call that
    arrives while another is running waits for it to finish.
    """

    def __init__(
        self,
        provider,
        sink: AlertSink | None = None,
        config: SamplerConfig | None = None,
        clock=None,
    ):
        """Initialize the sampler.

        Args:
            provider: SystemInfoProvider to pull snapshots from
            sink: AlertSink receiving alerts (optional, alerts are also returned)
            config: SamplerConfig; defaults apply when omitted
            clock: Callable returning wall-clock milliseconds (for tests)
        """
        self.provider = provider
        self.sink = sink
        self.config = config if config is not None else SamplerConfig()
        self._clock = clock if clock is not None else _wall_clock_ms

        self._lock = threading.Lock()
        # One long-lived pool; a fetch still hung from an earlier tick is never resubmitted
        self._executor = ThreadPoolExecutor(max_workers=3, thread_name_prefix="netwatch-fetch")
        self._pending: dict[str, Future] = {}
        self._closed = False

        self._previous: CounterSnapshot | None = None
        self._known_apps: set[str] = set()
        self._known_hosts: set[str] = set()
        self._dns_baseline: frozenset[str] = frozenset()
        self._dns_servers: list[str] = []
        self._warmed_up = False

    @property
    def warmed_up(self) -> bool:
        return self._warmed_up

    @property
    def previous_counters(self) -> CounterSnapshot | None:
        return self._previous

    @property
    def known_apps(self) -> frozenset[str]:
        return frozenset(self._known_apps)

    @property
    def known_hosts(self) -> frozenset[str]:
        return frozenset(self._known_hosts)

    @property
    def dns_servers(self) -> list[str]:
        """DNS servers of the current baseline, in the order they were reported."""
        return list(self._dns_servers)

    def sample(self) -> SampleResult | SampleFailure:
        """Run one poll.

        Alerts are pushed to the sink before the lock is released, so they
        reach it in commit order even when callers race.

        Returns:
            SampleResult on success, or SampleFailure when a snapshot could
            not be fetched or interpreted (state is left untouched)
        """
        with self._lock:
            try:
                counters, connections, interfaces = self._fetch_snapshots()
                snapshot = self._build_snapshot(counters)
                records = self._established_connections(connections)
                dns_servers = self._flatten_dns(interfaces)
            except SamplerError as e:
                logger.warning("Sample skipped: %s", e)
                return SampleFailure(error=e)

            result = self._commit(snapshot, records, dns_servers)
            self._emit(result.alerts)

        return result

    def close(self):
        """Release the fetch pool; later samples fail as ProviderUnavailable.

        Does not wait for a provider call that is still hung.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._executor.shutdown(wait=False, cancel_futures=True)
        logger.debug("Sampler closed")

    def _fetch_snapshots(self):
        """Fetch all three snapshots concurrently, bounded by the provider timeout."""
        if self._closed:
            raise ProviderUnavailable("Sampler is closed")

        busy = sorted(name for name, f in self._pending.items() if not f.done())
        if busy:
            raise ProviderUnavailable(f"Previous fetch still running: {', '.join(busy)}")

        calls = {
            "counters": self.provider.current_counters,
            "connections": self.provider.current_connections,
            "interfaces": self.provider.current_interfaces,
        }
        futures = {name: self._executor.submit(call) for name, call in calls.items()}
        self._pending = futures

        _, not_done = wait(futures.values(), timeout=self.config.provider_timeout_seconds)
        if not_done:
            pending = sorted(name for name, f in futures.items() if f in not_done)
            raise ProviderUnavailable(
                f"Timed out after {self.config.provider_timeout_ms}ms waiting for: {', '.join(pending)}"
            )

        results = []
        for name, future in futures.items():
            try:
                results.append(future.result())
            except Exception as e:
                raise ProviderUnavailable(f"Fetching {name} failed: {e}") from e
        return tuple(results)

    def _build_snapshot(self, counters) -> CounterSnapshot:
        """Sum per-interface counters into one timestamped snapshot."""
        if not counters:
            raise MalformedSnapshot("Provider returned no interface counters")

        total_rx = 0
        total_tx = 0
        try:
            for iface in counters:
                if not (_is_byte_count(iface.rx_bytes) and _is_byte_count(iface.tx_bytes)):
                    raise MalformedSnapshot(f"Invalid byte counters for interface {iface.name!r}")
                total_rx += iface.rx_bytes
                total_tx += iface.tx_bytes
        except (AttributeError, TypeError) as e:
            raise MalformedSnapshot(f"Unreadable counter snapshot: {e}") from e

        return CounterSnapshot(total_rx_bytes=total_rx, total_tx_bytes=total_tx, taken_at_ms=self._clock())

    def _established_connections(self, connections) -> list[ConnectionRecord]:
        """Keep established connections, rejecting fields of the wrong type."""
        records = []
        try:
            for conn in connections:
                if conn.state != ESTABLISHED:
                    continue
                if not (
                    _is_optional(conn.process, str)
                    and _is_optional(conn.peer_address, str)
                    and _is_optional_int(conn.pid)
                    and _is_optional_int(conn.peer_port)
                ):
                    raise MalformedSnapshot(f"Invalid field types in connection {conn!r}")
                records.append(
                    ConnectionRecord(
                        process_name=conn.process or UNKNOWN_PROCESS,
                        pid=conn.pid,
                        peer_address=conn.peer_address or None,
                        peer_port=conn.peer_port,
                        state=conn.state,
                    )
                )
        except (AttributeError, TypeError) as e:
            raise MalformedSnapshot(f"Unreadable connection snapshot: {e}") from e
        return records

    def _flatten_dns(self, interfaces) -> list[str]:
        """Flatten every interface's DNS servers, dropping blanks and duplicates."""
        servers = []
        try:
            for iface in interfaces:
                entries = iface.dns_servers or []
                if isinstance(entries, str):
                    raise MalformedSnapshot(f"dns_servers of {iface.name!r} is not a list")
                servers.extend(s.strip() for s in entries if s and s.strip())
        except (AttributeError, TypeError) as e:
            raise MalformedSnapshot(f"Unreadable interface snapshot: {e}") from e
        return list(dict.fromkeys(servers))

    def _commit(self, snapshot, records, dns_servers) -> SampleResult:
        """Apply a fully validated poll to the sampler state."""
        warm_up = not self._warmed_up
        alerts = []

        timing_degenerate = False
        if self._previous is None:
            # Seed the baseline so the first rate is 0, not everything since boot
            rates = RateResult()
        else:
            try:
                rates = compute_rates(self._previous, snapshot)
            except DegenerateTiming as e:
                logger.debug("Rate computation skipped: %s", e)
                rates = RateResult()
                timing_degenerate = True
        self._previous = snapshot

        for record in records:
            app = record.process_name
            if app != UNKNOWN_PROCESS and app not in self._known_apps:
                self._known_apps.add(app)
                if not warm_up:
                    alerts.append(Alert(AlertKind.NEW_APP, f"First network activity detected for: {app}"))

            address = record.peer_address
            if address and not self.config.is_excluded_address(address) and address not in self._known_hosts:
                self._known_hosts.add(address)
                if not warm_up:
                    logger.debug("New remote host: %s (%s)", address, app)
                    if self.config.alert_on_new_host:
                        alerts.append(
                            Alert(AlertKind.NEW_HOST, f"First connection to remote host: {address} ({app})")
                        )

        current_dns = frozenset(dns_servers)
        if warm_up:
            self._dns_baseline = current_dns
            self._dns_servers = dns_servers
        elif current_dns != self._dns_baseline:
            self._dns_baseline = current_dns
            self._dns_servers = dns_servers
            listed = ", ".join(dns_servers) or "(none)"
            alerts.append(Alert(AlertKind.DNS_CHANGE, f"DNS Servers changed to: {listed}"))

        if warm_up:
            logger.info(
                "Warm-up complete: %d apps, %d hosts, %d DNS servers",
                len(self._known_apps),
                len(self._known_hosts),
                len(self._dns_servers),
            )
        self._warmed_up = True

        logger.debug(
            "Sample: rx=%.1fB/s tx=%.1fB/s connections=%d alerts=%d",
            rates.rx_bytes_per_sec,
            rates.tx_bytes_per_sec,
            len(records),
            len(alerts),
        )
        return SampleResult(
            rates=rates,
            connections=records,
            alerts=alerts,
            timing_degenerate=timing_degenerate,
        )

    def _emit(self, alerts):
        if self.sink is None:
            return
        for alert in alerts:
            try:
                self.sink.emit_alert(alert)
            except Exception:
                logger.exception("Alert sink failed for %s", alert.kind.value)
