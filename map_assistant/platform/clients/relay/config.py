"""Configuration for the relay client."""

from dataclasses import dataclass

from map_assistant.platform.settings import RelaySettings


@dataclass(frozen=True)
class RelayClientConfig:
    """Configuration for a relay client instance.

    Attributes:
        timeout_seconds: Timeout for HTTP requests (default: 60s).
        api_key: Optional bearer token for the relay.
    """

    timeout_seconds: float = 60.0
    api_key: str | None = None

    @classmethod
    def from_settings(cls, settings: RelaySettings) -> "RelayClientConfig":
        return cls(timeout_seconds=settings.timeout_seconds, api_key=settings.api_key)
