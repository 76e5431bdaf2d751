"""Runtime configuration for NetWatch."""

import os
from dataclasses import dataclass

DEFAULT_EXCLUDED_PREFIXES = ("127.", "10.", "192.168.")

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class SamplerConfig:
    """Options for the sampler, the scheduler and the websocket broadcaster.

    Only ``poll_interval_ms`` and ``excluded_prefixes`` affect what the
    sampler reports; the rest tune the surrounding shell.
    """

    poll_interval_ms: int = 2000
    excluded_prefixes: tuple[str, ...] = DEFAULT_EXCLUDED_PREFIXES
    alert_on_new_host: bool = False
    provider_timeout_ms: int = 1500
    failure_warning_threshold: int = 3
    host: str = "127.0.0.1"
    port: int = 3000

    def __post_init__(self):
        if self.poll_interval_ms <= 0:
            raise ValueError("poll_interval_ms must be positive")
        if self.provider_timeout_ms <= 0:
            raise ValueError("provider_timeout_ms must be positive")
        if self.failure_warning_threshold <= 0:
            raise ValueError("failure_warning_threshold must be positive")
        if not 0 <= self.port <= 65535:
            raise ValueError("port must be between 0 and 65535")
        # Accept any iterable of prefixes but store an immutable tuple
        object.__setattr__(self, "excluded_prefixes", tuple(self.excluded_prefixes))

    @property
    def provider_timeout_seconds(self) -> float:
        return self.provider_timeout_ms / 1000.0

    def is_excluded_address(self, address: str) -> bool:
        """Return True for loopback/private addresses skipped by host detection."""
        return any(address.startswith(prefix) for prefix in self.excluded_prefixes)

    @classmethod
    def from_env(cls, environ=None) -> "SamplerConfig":
        """Build a config from NETWATCH_* environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            SamplerConfig with defaults for every unset variable

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        if environ is None:
            environ = os.environ

        kwargs = {}

        int_fields = {
            "NETWATCH_POLL_INTERVAL_MS": "poll_interval_ms",
            "NETWATCH_PROVIDER_TIMEOUT_MS": "provider_timeout_ms",
            "NETWATCH_FAILURE_WARNING_THRESHOLD": "failure_warning_threshold",
            "NETWATCH_PORT": "port",
        }
        for var, field_name in int_fields.items():
            raw = environ.get(var, "").strip()
            if not raw:
                continue
            try:
                kwargs[field_name] = int(raw)
            except ValueError:
                raise ValueError(f"{var} must be an integer, got {raw!r}") from None

        prefixes = environ.get("NETWATCH_EXCLUDED_PREFIXES")
        if prefixes is not None:
            kwargs["excluded_prefixes"] = tuple(
                p.strip() for p in prefixes.split(",") if p.strip()
            )

        alert_hosts = environ.get("NETWATCH_ALERT_NEW_HOSTS")
        if alert_hosts is not None:
            kwargs["alert_on_new_host"] = alert_hosts.strip().lower() in _TRUE_VALUES

        host = environ.get("NETWATCH_HOST", "").strip()
        if host:
            kwargs["host"] = host

        return cls(**kwargs)
