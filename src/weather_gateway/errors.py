"""Shared error types for weather_gateway.

Only ``KeyValidationError`` and ``UpstreamUnavailableError`` cross the
orchestrator boundary. Cache and remote errors are recovered or collapsed
before they reach callers.
"""


class GatewayError(Exception):
    """Base exception for weather_gateway."""


class KeyValidationError(GatewayError, ValueError):
    """Raised when a logical key is missing or malformed, before any I/O."""


class UpstreamUnavailableError(GatewayError):
    """Raised when the live path failed for any reason.

    Attributes:
        resource_type: Resource type whose upstream could not be reached.
    """

    def __init__(self, resource_type: str) -> None:
        self.resource_type = resource_type
        super().__init__(f"upstream_unavailable: {resource_type}")


class CacheUnavailableError(GatewayError):
    """Raised by cache stores when the backing store cannot be reached."""


class RemoteFetchError(GatewayError):
    """Raised when the data provider fails or returns an unusable response."""

    def __init__(
        self,
        message: str,
        http_status: int | None = None,
        response_body: str | None = None,
    ) -> None:
        """Initialize request-error metadata.

        Args:
            message: Human-readable error message.
            http_status: Optional HTTP status observed from the provider.
            response_body: Optional response payload text.
        """
        super().__init__(message)
        self.http_status = http_status
        self.response_body = response_body
