"""Data models for NetWatch telemetry samples."""

from dataclasses import dataclass, field
from enum import Enum

from netwatch.errors import SamplerError

UNKNOWN_PROCESS = "Unknown"
ESTABLISHED = "ESTABLISHED"


@dataclass(frozen=True)
class InterfaceCounters:
    """Cumulative byte counters reported for one network interface."""

    name: str
    rx_bytes: int
    tx_bytes: int


@dataclass(frozen=True)
class RawConnection:
    """One socket as reported by the system information provider."""

    state: str
    process: str | None = None
    pid: int | None = None
    peer_address: str | None = None
    peer_port: int | None = None


@dataclass(frozen=True)
class InterfaceConfig:
    """Interface configuration relevant to telemetry (DNS servers in effect)."""

    name: str
    dns_servers: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CounterSnapshot:
    """Totals of all interface counters at one point in time."""

    total_rx_bytes: int
    total_tx_bytes: int
    taken_at_ms: float

    def __post_init__(self):
        """Reject negative totals, which no interface can report."""
        if self.total_rx_bytes < 0 or self.total_tx_bytes < 0:
            raise ValueError("Counter totals cannot be negative")


@dataclass(frozen=True)
class RateResult:
    """Throughput derived from two consecutive counter snapshots."""

    rx_bytes_per_sec: float = 0.0
    tx_bytes_per_sec: float = 0.0

    def __post_init__(self):
        """Floor both rates at zero so counter resets never go negative."""
        object.__setattr__(self, "rx_bytes_per_sec", max(0.0, float(self.rx_bytes_per_sec)))
        object.__setattr__(self, "tx_bytes_per_sec", max(0.0, float(self.tx_bytes_per_sec)))


@dataclass(frozen=True)
class ConnectionRecord:
    """An established connection, rebuilt on every poll."""

    process_name: str
    pid: int | None
    peer_address: str | None
    peer_port: int | None
    state: str = ESTABLISHED

    def to_dict(self) -> dict:
        """Serialize using the keys clients expect on the wire."""
        return {
            "processName": self.process_name,
            "pid": self.pid,
            "peerAddress": self.peer_address,
            "peerPort": self.peer_port,
            "state": self.state,
        }


class AlertKind(Enum):
    """Kinds of one-shot alerts; values are the wire `type` strings."""

    NEW_APP = "New App"
    NEW_HOST = "New Host"
    DNS_CHANGE = "DNS Change"


@dataclass(frozen=True)
class Alert:
    """A fire-and-forget alert event."""

    kind: AlertKind
    message: str

    def to_dict(self) -> dict:
        return {"type": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class SampleResult:
    """Outcome of a successful sample cycle."""

    rates: RateResult
    connections: list[ConnectionRecord]
    alerts: list[Alert] = field(default_factory=list)
    timing_degenerate: bool = False

    @property
    def rx_sec(self) -> float:
        return self.rates.rx_bytes_per_sec

    @property
    def tx_sec(self) -> float:
        return self.rates.tx_bytes_per_sec

    def to_dict(self) -> dict:
        """Payload of the `update` event."""
        return {
            "rx_sec": self.rx_sec,
            "tx_sec": self.tx_sec,
            "connections": [conn.to_dict() for conn in self.connections],
        }


@dataclass(frozen=True)
class SampleFailure:
    """Tagged failure: the tick is skipped and no state was mutated."""

    error: SamplerError

    @property
    def reason(self) -> str:
        return str(self.error)
