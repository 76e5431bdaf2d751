"""System information providers feeding the telemetry sampler."""

import logging
import platform
import re
import subprocess
from typing import Protocol

import psutil

from netwatch.models import InterfaceConfig, InterfaceCounters, RawConnection

logger = logging.getLogger(__name__)

RESOLV_CONF_PATH = "/etc/resolv.conf"

_ADAPTER_HEADER_PATTERN = re.compile(r"^(\S.*?)\s*:\s*$")
_DNS_SERVERS_PATTERN = re.compile(r"^\s+DNS Servers[\s.]*:\s*(\S*)\s*$", re.IGNORECASE)
_CONTINUATION_PATTERN = re.compile(r"^\s+([0-9A-Fa-f:.%]+)\s*$")


class SystemInfoProvider(Protocol):
    """Protocol defining the snapshots the sampler pulls on every poll.

    Any call may raise; the sampler treats that as the whole cycle failing.
    """

    def current_counters(self) -> list[InterfaceCounters]:
        """Return cumulative rx/tx byte counters for every interface."""
        ...

    def current_connections(self) -> list[RawConnection]:
        """Return all sockets with their state and owning process."""
        ...

    def current_interfaces(self) -> list[InterfaceConfig]:
        """Return interface configuration including DNS servers."""
        ...


def parse_resolv_conf(text: str) -> list[str]:
    """Extract nameserver addresses from resolv.conf content (pure function).

    Args:
        text: Raw file content

    Returns:
        Nameserver addresses in file order

    Examples:
        >>> parse_resolv_conf("# comment\\nnameserver 1.1.1.1\\n")
        ['1.1.1.1']
    """
    servers = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line[0] in "#;":
            continue
        parts = line.split()
        if parts[0] == "nameserver" and len(parts) >= 2:
            servers.append(parts[1])
    return servers


def parse_ipconfig_dns(output: str) -> list[InterfaceConfig]:
    """Extract per-adapter DNS servers from Windows ``ipconfig /all`` output.

    The first server sits on the "DNS Servers" line; additional servers
    follow on indented lines that hold nothing but an address.

    Args:
        output: Raw ipconfig stdout

    Returns:
        One InterfaceConfig per adapter that lists DNS servers
    """
    adapters: dict[str, list[str]] = {}
    current = None
    in_dns_block = False

    for line in output.splitlines():
        if not line.strip():
            continue

        header = _ADAPTER_HEADER_PATTERN.match(line)
        if header:
            current = header.group(1)
            in_dns_block = False
            continue

        dns = _DNS_SERVERS_PATTERN.match(line)
        if dns and current is not None:
            in_dns_block = True
            if dns.group(1):
                adapters.setdefault(current, []).append(dns.group(1))
            continue

        if in_dns_block:
            cont = _CONTINUATION_PATTERN.match(line)
            if cont and current is not None:
                adapters.setdefault(current, []).append(cont.group(1))
                continue
            in_dns_block = False

    return [InterfaceConfig(name=name, dns_servers=servers) for name, servers in adapters.items()]


class PsutilProvider:
    """Provider backed by psutil for counters and connections.

    DNS servers are read from /etc/resolv.conf on Linux and macOS and from
    ``ipconfig /all`` on Windows, since psutil does not expose them.

    Connection listing may need elevated privileges on macOS; psutil raises
    AccessDenied there and the sampler reports the tick as failed.
    """

    def __init__(self, resolv_conf_path: str = RESOLV_CONF_PATH, timeout_ms: int = 1500):
        """Initialize the provider.

        Args:
            resolv_conf_path: File to read nameservers from on POSIX systems
            timeout_ms: Timeout for the ipconfig subprocess on Windows
        """
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

        self.resolv_conf_path = resolv_conf_path
        self.timeout_seconds = timeout_ms / 1000.0
        self.system = platform.system()

        logger.debug("PsutilProvider initialized: system=%s", self.system)

    def current_counters(self) -> list[InterfaceCounters]:
        counters = psutil.net_io_counters(pernic=True)
        return [
            InterfaceCounters(name=name, rx_bytes=c.bytes_recv, tx_bytes=c.bytes_sent)
            for name, c in counters.items()
        ]

    def current_connections(self) -> list[RawConnection]:
        names: dict[int, str | None] = {}
        connections = []
        for conn in psutil.net_connections(kind="inet"):
            pid = conn.pid
            if pid is not None and pid not in names:
                names[pid] = self._process_name(pid)
            raddr = conn.raddr or None
            connections.append(
                RawConnection(
                    state=conn.status,
                    process=names.get(pid) if pid is not None else None,
                    pid=pid,
                    peer_address=raddr.ip if raddr else None,
                    peer_port=raddr.port if raddr else None,
                )
            )
        return connections

    def current_interfaces(self) -> list[InterfaceConfig]:
        if self.system == "Windows":
            result = subprocess.run(
                ["ipconfig", "/all"],
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                shell=False,
            )
            if result.returncode != 0:
                raise OSError(f"ipconfig exited with code {result.returncode}")
            return parse_ipconfig_dns(result.stdout)

        try:
            with open(self.resolv_conf_path, encoding="utf-8") as f:
                servers = parse_resolv_conf(f.read())
        except FileNotFoundError:
            # Minimal containers may ship without resolv.conf
            logger.debug("No resolver configuration at %s", self.resolv_conf_path)
            servers = []
        return [InterfaceConfig(name="system", dns_servers=servers)]

    @staticmethod
    def _process_name(pid: int) -> str | None:
        """Resolve a process name, or None when it exited or is not ours to read."""
        try:
            return psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None
