"""Tests for netwatch.models invariants and wire serialization."""

import pytest

from netwatch.errors import ProviderUnavailable
from netwatch.models import (
    Alert,
    AlertKind,
    ConnectionRecord,
    CounterSnapshot,
    RateResult,
    SampleFailure,
    SampleResult,
)


class TestCounterSnapshot:
    """Test CounterSnapshot invariants."""

    def test_valid_snapshot(self):
        """Test a snapshot keeps its totals and timestamp."""
        snapshot = CounterSnapshot(total_rx_bytes=10, total_tx_bytes=20, taken_at_ms=1234.5)

        assert snapshot.total_rx_bytes == 10
        assert snapshot.total_tx_bytes == 20
        assert snapshot.taken_at_ms == 1234.5

    def test_negative_totals_rejected(self):
        """Test totals below zero are impossible."""
        with pytest.raises(ValueError, match="cannot be negative"):
            CounterSnapshot(total_rx_bytes=-1, total_tx_bytes=0, taken_at_ms=0)


class TestRateResult:
    """Test RateResult flooring."""

    def test_post_init_floors_negative_rates(self):
        """Test __post_init__ invariant: rates are never negative."""
        rates = RateResult(rx_bytes_per_sec=-50.0, tx_bytes_per_sec=-0.1)

        assert rates.rx_bytes_per_sec == 0.0
        assert rates.tx_bytes_per_sec == 0.0

    def test_rates_coerced_to_float(self):
        """Test integer rates are stored as floats."""
        rates = RateResult(rx_bytes_per_sec=5, tx_bytes_per_sec=7)

        assert isinstance(rates.rx_bytes_per_sec, float)
        assert rates.tx_bytes_per_sec == 7.0

    def test_default_is_zero(self):
        """Test the default rate is zero in both directions."""
        assert RateResult() == RateResult(0.0, 0.0)


class TestWireFormat:
    """Test dictionaries pushed to clients."""

    def test_connection_record_keys(self):
        """Test records use camelCase wire keys."""
        record = ConnectionRecord(process_name="curl", pid=42, peer_address="1.2.3.4", peer_port=443)

        assert record.to_dict() == {
            "processName": "curl",
            "pid": 42,
            "peerAddress": "1.2.3.4",
            "peerPort": 443,
            "state": "ESTABLISHED",
        }

    def test_alert_type_strings(self):
        """Test alert kinds serialize to their display strings."""
        assert Alert(AlertKind.NEW_APP, "m").to_dict() == {"type": "New App", "message": "m"}
        assert Alert(AlertKind.NEW_HOST, "m").to_dict()["type"] == "New Host"
        assert Alert(AlertKind.DNS_CHANGE, "m").to_dict()["type"] == "DNS Change"

    def test_update_payload(self):
        """Test the update payload carries rates and connections but not alerts."""
        result = SampleResult(
            rates=RateResult(1000.0, 500.0),
            connections=[ConnectionRecord("curl", None, None, None)],
            alerts=[Alert(AlertKind.NEW_APP, "x")],
        )

        payload = result.to_dict()

        assert payload["rx_sec"] == 1000.0
        assert payload["tx_sec"] == 500.0
        assert payload["connections"][0]["processName"] == "curl"
        assert payload["connections"][0]["pid"] is None
        assert "alerts" not in payload


class TestSampleFailure:
    """Test the tagged failure value."""

    def test_reason_is_error_message(self):
        """Test reason exposes the underlying error text."""
        failure = SampleFailure(error=ProviderUnavailable("timed out"))

        assert failure.reason == "timed out"
        assert isinstance(failure.error, ProviderUnavailable)
