"""Simulated system information providers for demos and testing."""

import random
from collections import deque

from netwatch.models import ESTABLISHED, InterfaceConfig, InterfaceCounters, RawConnection


class FakeProvider:
    """Generates plausible, slowly evolving network telemetry."""

    def __init__(self, seed: int | None = None):
        """Initialize with optional random seed for deterministic behavior."""
        # Isolated random instance so worker threads do not share state
        self._random = random.Random(seed)

        # Simulation parameters
        self.mean_rx_per_poll = 250_000
        self.mean_tx_per_poll = 60_000
        self.new_app_probability = 0.05
        self.dns_change_probability = 0.01

        self.apps = ["firefox", "slack", "python3", "sshd", "Unknown"]
        self.spare_apps = ["curl", "zoom", "spotify", "dropbox"]
        self.hosts = ["93.184.216.34", "140.82.112.3", "192.168.1.50", "10.0.0.7", "127.0.0.1"]
        self.dns_servers = ["8.8.8.8", "8.8.4.4"]
        self.spare_dns = ["1.1.1.1", "9.9.9.9"]

        self._rx_total = self._random.randint(10**8, 10**9)
        self._tx_total = self._random.randint(10**7, 10**8)

    def current_counters(self) -> list[InterfaceCounters]:
        self._rx_total += max(0, int(self._random.gauss(self.mean_rx_per_poll, self.mean_rx_per_poll / 4)))
        self._tx_total += max(0, int(self._random.gauss(self.mean_tx_per_poll, self.mean_tx_per_poll / 4)))
        # Split across two interfaces the way real hosts report them
        lo_rx = self._rx_total // 50
        lo_tx = self._tx_total // 50
        return [
            InterfaceCounters(name="lo", rx_bytes=lo_rx, tx_bytes=lo_tx),
            InterfaceCounters(name="eth0", rx_bytes=self._rx_total - lo_rx, tx_bytes=self._tx_total - lo_tx),
        ]

    def current_connections(self) -> list[RawConnection]:
        if self.spare_apps and self._random.random() < self.new_app_probability:
            self.apps.append(self.spare_apps.pop(0))

        connections = []
        for pid, app in enumerate(self.apps, start=1000):
            state = ESTABLISHED if self._random.random() < 0.8 else "TIME_WAIT"
            connections.append(
                RawConnection(
                    state=state,
                    process=None if app == "Unknown" else app,
                    pid=None if app == "Unknown" else pid,
                    peer_address=self._random.choice(self.hosts),
                    peer_port=self._random.choice([443, 80, 22, 5222]),
                )
            )
        return connections

    def current_interfaces(self) -> list[InterfaceConfig]:
        if self.spare_dns and self._random.random() < self.dns_change_probability:
            self.dns_servers = [self.spare_dns.pop(0)] + self.dns_servers[1:]
        return [
            InterfaceConfig(name="eth0", dns_servers=list(self.dns_servers)),
            InterfaceConfig(name="lo", dns_servers=[]),
        ]


class ScriptedProvider:
    """Replays queued snapshots in order; queued exceptions are raised.

    When a queue runs dry the last value is repeated, so a script only
    needs to spell out the polls where something changes.
    """

    def __init__(self, counters=None, connections=None, interfaces=None):
        self._queues = {
            "counters": deque(counters or [[]]),
            "connections": deque(connections or [[]]),
            "interfaces": deque(interfaces or [[]]),
        }
        self._last = {}
        self.calls = {"counters": 0, "connections": 0, "interfaces": 0}

    def push(self, counters=None, connections=None, interfaces=None):
        """Queue the values returned on the next poll."""
        for key, value in (("counters", counters), ("connections", connections), ("interfaces", interfaces)):
            if value is not None:
                self._queues[key].append(value)

    def _next(self, key):
        self.calls[key] += 1
        queue = self._queues[key]
        value = queue.popleft() if queue else self._last.get(key, [])
        if isinstance(value, BaseException):
            raise value
        self._last[key] = value
        return value

    def current_counters(self) -> list[InterfaceCounters]:
        return self._next("counters")

    def current_connections(self) -> list[RawConnection]:
        return self._next("connections")

    def current_interfaces(self) -> list[InterfaceConfig]:
        return self._next("interfaces")
