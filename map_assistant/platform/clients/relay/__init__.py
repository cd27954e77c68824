"""Relay client module for talking to the chat relay backend.

The module includes:
- An async HTTP client with one method per relay endpoint
- Wire models for messages, runs and tool calls
- The transport exception hierarchy
"""

from map_assistant.platform.clients.relay.client import RelayClient
from map_assistant.platform.clients.relay.config import RelayClientConfig
from map_assistant.platform.clients.relay.exceptions import (
    RelayConnectionError,
    RelayHTTPError,
    RelayProtocolError,
    RelayTimeoutError,
    TransportError,
)
from map_assistant.platform.clients.relay.models import (
    ContentPart,
    ListResponse,
    Message,
    Run,
    RunStatus,
    ToolInvocation,
    ToolResult,
)

__all__ = [
    # Client
    "RelayClient",
    "RelayClientConfig",
    # Models
    "ContentPart",
    "ListResponse",
    "Message",
    "Run",
    "RunStatus",
    "ToolInvocation",
    "ToolResult",
    # Exceptions
    "TransportError",
    "RelayConnectionError",
    "RelayTimeoutError",
    "RelayHTTPError",
    "RelayProtocolError",
]
