"""Tests for the simulated and scripted providers."""

import pytest

from netwatch.fake_provider import FakeProvider, ScriptedProvider
from netwatch.models import ESTABLISHED, InterfaceConfig, InterfaceCounters, RawConnection, SampleResult
from netwatch.sampler import TelemetrySampler


class TestFakeProvider:
    """Test FakeProvider behavior and contracts."""

    def test_deterministic_with_seed(self):
        """Test two providers with the same seed produce identical snapshots."""
        first = FakeProvider(seed=42)
        second = FakeProvider(seed=42)

        for _ in range(5):
            assert first.current_counters() == second.current_counters()
            assert first.current_connections() == second.current_connections()
            assert first.current_interfaces() == second.current_interfaces()

    def test_counters_monotonic(self):
        """Test simulated counters only ever grow."""
        provider = FakeProvider(seed=7)
        previous = 0

        for _ in range(20):
            counters = provider.current_counters()
            total = sum(c.rx_bytes for c in counters)
            assert all(isinstance(c, InterfaceCounters) for c in counters)
            assert total >= previous
            previous = total

    def test_connections_shape(self):
        """Test connections carry state, peer and an app or Unknown marker."""
        provider = FakeProvider(seed=1)

        connections = provider.current_connections()

        assert connections
        for conn in connections:
            assert isinstance(conn, RawConnection)
            assert conn.state in (ESTABLISHED, "TIME_WAIT")
            assert conn.peer_address
            if conn.process is None:
                assert conn.pid is None

    def test_interfaces_include_dns(self):
        """Test at least one interface reports DNS servers."""
        interfaces = FakeProvider(seed=3).current_interfaces()

        assert any(i.dns_servers for i in interfaces)

    def test_drives_sampler(self):
        """Test a sampler runs cleanly over many simulated polls."""
        now = [0.0]
        sampler = TelemetrySampler(FakeProvider(seed=11), clock=lambda: now[0])

        for _ in range(50):
            result = sampler.sample()
            now[0] += 2000
            assert isinstance(result, SampleResult)
            assert result.rx_sec >= 0.0


class TestScriptedProvider:
    """Test ScriptedProvider replay semantics."""

    def test_replays_in_order_then_repeats_last(self):
        """Test values come out in order and the last one sticks."""
        a = [InterfaceCounters("eth0", 1, 1)]
        b = [InterfaceCounters("eth0", 2, 2)]
        provider = ScriptedProvider(counters=[a, b])

        assert provider.current_counters() == a
        assert provider.current_counters() == b
        assert provider.current_counters() == b
        assert provider.calls["counters"] == 3

    def test_raises_queued_exception(self):
        """Test queued exceptions are raised and do not replace the last value."""
        good = [InterfaceConfig("eth0", ["8.8.8.8"])]
        provider = ScriptedProvider(interfaces=[good, OSError("gone")])

        provider.current_interfaces()
        with pytest.raises(OSError, match="gone"):
            provider.current_interfaces()
        assert provider.current_interfaces() == good

    def test_push_appends_to_queues(self):
        """Test push schedules values for the next poll."""
        provider = ScriptedProvider()
        conns = [RawConnection(state=ESTABLISHED, process="curl")]

        provider.current_connections()
        provider.push(connections=conns)

        assert provider.current_connections() == conns
