"""Error taxonomy for the telemetry sampler.

None of these are fatal. A provider fault or an uninterpretable snapshot turns
into a skipped tick; degenerate timing only skips the rate computation.
"""


class SamplerError(Exception):
    """Base class for sampler errors."""


class ProviderUnavailable(SamplerError):
    """A snapshot fetch failed or timed out."""


class MalformedSnapshot(SamplerError):
    """The provider returned data the sampler cannot interpret."""


class DegenerateTiming(SamplerError):
    """Zero or negative elapsed time between two polls."""

    def __init__(self, elapsed_sec: float):
        super().__init__(f"Non-positive elapsed time between polls: {elapsed_sec:.3f}s")
        self.elapsed_sec = elapsed_sec
