"""Exceptions raised by the chat layer.

Transport failures are ``TransportError`` from the relay client; the
errors here cover the run life cycle and local tool dispatch.
"""

from collections.abc import Iterable


class ChatError(Exception):
    """Base exception for chat coordination errors."""


class ConflictError(ChatError):
    """Raised when a turn or poll loop is started while a run is active."""

    def __init__(self, message: str, run_id: str | None = None):
        self.run_id = run_id
        run_info = f" [run: {run_id}]" if run_id else ""
        super().__init__(f"{message}{run_info}")


class UnknownFunctionError(ChatError):
    """Raised when the assistant requests a function the registry does not have."""

    def __init__(self, function_name: str, invocation_id: str | None = None):
        self.function_name = function_name
        self.invocation_id = invocation_id
        super().__init__(f"Unknown function requested: {function_name!r}")


class PartialSubmissionError(ChatError):
    """Raised when tool results do not exactly cover the pending invocations."""

    def __init__(self, missing: Iterable[str], unexpected: Iterable[str] = ()):
        self.missing = sorted(missing)
        self.unexpected = sorted(unexpected)
        details = []
        if self.missing:
            details.append(f"missing {', '.join(self.missing)}")
        if self.unexpected:
            details.append(f"unexpected {', '.join(self.unexpected)}")
        super().__init__(f"Tool results do not match pending invocations: {'; '.join(details)}")


class RunFailedError(ChatError):
    """Raised when a run ends in a terminal status other than completed."""

    def __init__(self, run_id: str, status: str, message: str | None = None):
        self.run_id = run_id
        self.status = status
        self.remote_message = message
        detail = f": {message}" if message else ""
        super().__init__(f"Run {run_id} ended with status {status}{detail}")
