"""Integration test fixtures.

This module provides shared fixtures for tests that drive the relay client
over HTTP, with the relay itself mocked by respx:
- A relay client pointed at a fake base URL
- Builders for relay response bodies
"""

import json
from collections.abc import AsyncIterator
from typing import Any

import pytest

from map_assistant.platform.clients.relay import RelayClient, RelayClientConfig

RELAY_URL = "http://relay.test"


# =============================================================================
# Relay Fixtures
# =============================================================================


@pytest.fixture
def relay_url() -> str:
    return RELAY_URL


@pytest.fixture
async def relay_client() -> AsyncIterator[RelayClient]:
    """Relay client with a short timeout and a bearer key."""
    async with RelayClient(RELAY_URL, config=RelayClientConfig(timeout_seconds=5, api_key="test-key")) as client:
        yield client


@pytest.fixture
def run_body():
    """Build the body of a /chat/list response for a run."""

    def build(
        status: str,
        *,
        run_id: str = "run_123",
        tool_calls: list[tuple[str, str, dict[str, Any]]] | None = None,
        messages: list[dict[str, Any]] | None = None,
    ) -> dict[str, Any]:
        run: dict[str, Any] = {"id": run_id, "object": "thread.run", "status": status}
        if tool_calls:
            run["required_action"] = {
                "type": "submit_tool_outputs",
                "submit_tool_outputs": {
                    "tool_calls": [
                        {"id": call_id, "type": "function", "function": {"name": name, "arguments": json.dumps(args)}}
                        for call_id, name, args in tool_calls
                    ]
                },
            }
        return {"messages": messages or [], "run": run, "status": status}

    return build


@pytest.fixture
def text_message():
    """Build an Assistants API message with one text part."""

    def build(message_id: str, role: str, text: str, created_at: int) -> dict[str, Any]:
        return {
            "id": message_id,
            "object": "thread.message",
            "role": role,
            "created_at": created_at,
            "content": [{"type": "text", "text": {"value": text, "annotations": []}}],
        }

    return build
