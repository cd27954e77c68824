"""Shared fixtures for chat layer unit tests.

Provides a mocked relay transport, a temporary conversation store and
builders for relay listings so tests can script a run's progress.
"""

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest

from map_assistant.chat.coordinator import CoordinatorConfig, RunCoordinator
from map_assistant.chat.map_view import MapView, create_map_registry
from map_assistant.chat.message_log import MessageLogView
from map_assistant.chat.storage import ConversationStore
from map_assistant.platform.clients.relay.client import RelayClient
from map_assistant.platform.clients.relay.models import ListResponse

CONVERSATION_ID = "thread_abc"
RUN_ID = "run_123"


def build_tool_call(call_id: str, name: str, arguments: dict[str, Any] | str) -> dict[str, Any]:
    encoded = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return {"id": call_id, "type": "function", "function": {"name": name, "arguments": encoded}}


def build_listing(
    status: str | None = None,
    *,
    run_id: str = RUN_ID,
    tool_calls: list[dict[str, Any]] | None = None,
    messages: list[dict[str, Any]] | None = None,
    last_error: dict[str, Any] | None = None,
) -> ListResponse:
    run = None
    if status is not None:
        run = {"id": run_id, "status": status, "last_error": last_error}
        if tool_calls is not None:
            run["required_action"] = {
                "type": "submit_tool_outputs",
                "submit_tool_outputs": {"tool_calls": tool_calls},
            }
    return ListResponse.model_validate({"messages": messages or [], "run": run, "status": status})


def build_message(message_id: str, role: str, text: str, created_at: int | None = None) -> dict[str, Any]:
    return {
        "id": message_id,
        "role": role,
        "created_at": created_at,
        "content": [{"type": "text", "text": {"value": text, "annotations": []}}],
    }


@pytest.fixture
def tool_call():
    return build_tool_call


@pytest.fixture
def listing():
    return build_listing


@pytest.fixture
def message():
    return build_message


@pytest.fixture
def transport() -> AsyncMock:
    """Relay transport with canned IDs."""
    mock = AsyncMock(spec=RelayClient)
    mock.create_conversation.return_value = CONVERSATION_ID
    mock.send_message.return_value = RUN_ID
    mock.send_audio.return_value = RUN_ID
    mock.list_messages.return_value = build_listing()
    mock.submit_tool_outputs.return_value = None
    return mock


@pytest.fixture
def store(tmp_path) -> ConversationStore:
    return ConversationStore(tmp_path / "state.json")


@pytest.fixture
def map_view() -> MapView:
    return MapView()


@pytest.fixture
def log_view() -> MessageLogView:
    return MessageLogView()


@pytest.fixture
def coordinator(transport, store, map_view, log_view) -> RunCoordinator:
    """Coordinator with no settle delay."""
    return RunCoordinator(
        transport,
        store,
        create_map_registry(map_view),
        log_view=log_view,
        config=CoordinatorConfig(settle_delay_seconds=0),
    )


@pytest.fixture
async def conversation_id(coordinator) -> str:
    """Start a conversation on the coordinator fixture."""
    return await coordinator.start_conversation()
