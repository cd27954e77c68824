"""Conversation layer: run coordination, tool dispatch and views.

The module includes:
- The run coordinator and its fixed-interval poll loop
- The tool registry and the map functions it exposes
- The message log view and local conversation storage
"""

from map_assistant.chat.coordinator import (
    CoordinatorConfig,
    CoordinatorState,
    PollResult,
    RunCoordinator,
)
from map_assistant.chat.exceptions import (
    ChatError,
    ConflictError,
    PartialSubmissionError,
    RunFailedError,
    UnknownFunctionError,
)
from map_assistant.chat.map_view import MapView, create_map_registry
from map_assistant.chat.message_log import LogEntry, MessageLogView
from map_assistant.chat.poller import PollerConfig, RunPoller
from map_assistant.chat.session import ChatSession
from map_assistant.chat.storage import ConversationStore
from map_assistant.chat.tools import FunctionTag, ToolRegistry, ToolSpec

__all__ = [
    # Coordination
    "RunCoordinator",
    "CoordinatorConfig",
    "CoordinatorState",
    "PollResult",
    "RunPoller",
    "PollerConfig",
    "ChatSession",
    # Tools
    "FunctionTag",
    "ToolRegistry",
    "ToolSpec",
    "MapView",
    "create_map_registry",
    # Views and storage
    "LogEntry",
    "MessageLogView",
    "ConversationStore",
    # Exceptions
    "ChatError",
    "ConflictError",
    "UnknownFunctionError",
    "PartialSubmissionError",
    "RunFailedError",
]
