"""Error taxonomy shared across kaiyo modules.

Only configuration errors and provider failures in the early phases of a
turn ever reach a caller. Tool and extraction failures are absorbed into
the conversation or the logs.
"""


class KaiyoError(Exception):
    """Base class for kaiyo errors."""


class ConfigurationError(KaiyoError):
    """Settings or model profile are missing or invalid."""

    def __init__(self, message: str):
        super().__init__(f"Configuration error: {message}")


class ProviderError(KaiyoError):
    """An LLM provider call failed.

    Attributes:
        phase: Turn phase in which the call was issued
    """

    phase: str = "unknown"

    def __init__(self, message: str):
        super().__init__(f"LLM provider error during {self.phase}: {message}")


class PlanningError(ProviderError):
    """Provider failure while planning; nothing has been streamed yet."""

    phase = "planning"


class NarrationError(ProviderError):
    """Provider failure while streaming the narrative answer."""

    phase = "narrating"


class GeocodingError(KaiyoError):
    """A single geocoding lookup failed."""

    def __init__(self, message: str, location: str = ""):
        super().__init__(message)
        self.location = location
