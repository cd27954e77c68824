"""Exception hierarchy for the relay client.

Every failure talking to the relay is a ``TransportError``; the subclasses
say what kind of failure it was.
"""


class TransportError(Exception):
    """Base exception for all relay transport errors."""

    def __init__(self, message: str, operation: str | None = None):
        self.operation = operation
        op_info = f" during {operation}" if operation else ""
        super().__init__(f"Relay error{op_info}: {message}")


class RelayConnectionError(TransportError):
    """Raised when the relay cannot be reached."""

    def __init__(self, message: str, operation: str | None = None, url: str | None = None):
        self.url = url
        url_info = f" ({url})" if url else ""
        super().__init__(f"connection failed{url_info}: {message}", operation=operation)


class RelayTimeoutError(TransportError):
    """Raised when a relay request times out."""

    def __init__(self, message: str, operation: str | None = None, timeout_seconds: float | None = None):
        self.timeout_seconds = timeout_seconds
        timeout_info = f" after {timeout_seconds}s" if timeout_seconds else ""
        super().__init__(f"timed out{timeout_info}: {message}", operation=operation)


class RelayHTTPError(TransportError):
    """Raised when the relay answers with a non-success status."""

    def __init__(self, status_code: int, message: str, operation: str | None = None):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}: {message}", operation=operation)


class RelayProtocolError(TransportError):
    """Raised when the relay's response body cannot be understood."""
