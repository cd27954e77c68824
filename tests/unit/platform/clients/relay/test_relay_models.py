"""Unit tests for relay wire models."""

import pytest

from map_assistant.platform.clients.relay.models import (
    ListResponse,
    Message,
    Run,
    RunStatus,
    ToolInvocation,
    ToolResult,
)


class TestRunStatus:
    """Tests for RunStatus."""

    @pytest.mark.parametrize("status", ["completed", "failed", "cancelled", "expired", "incomplete"])
    def test_terminal(self, status):
        assert RunStatus(status).is_terminal is True

    @pytest.mark.parametrize("status", ["queued", "in_progress", "requires_action", "cancelling"])
    def test_not_terminal(self, status):
        assert RunStatus(status).is_terminal is False

    def test_regression(self):
        assert RunStatus.QUEUED.is_regression_from(RunStatus.IN_PROGRESS) is True
        assert RunStatus.IN_PROGRESS.is_regression_from(RunStatus.COMPLETED) is True

    def test_tool_cycle_is_not_regression(self):
        assert RunStatus.IN_PROGRESS.is_regression_from(RunStatus.REQUIRES_ACTION) is False
        assert RunStatus.REQUIRES_ACTION.is_regression_from(RunStatus.IN_PROGRESS) is False

    def test_unknown_status_rejected(self):
        with pytest.raises(ValueError):
            RunStatus("exploded")


class TestMessage:
    def test_text_parts_skip_other_types(self):
        message = Message.model_validate(
            {
                "id": "msg_1",
                "role": "assistant",
                "content": [
                    {"type": "image_file", "image_file": {"file_id": "file_1"}},
                    {"type": "text", "text": {"value": "Here you go", "annotations": []}},
                ],
            }
        )

        assert message.text_parts() == ["Here you go"]
        assert message.content[0].model_extra == {"image_file": {"file_id": "file_1"}}

    def test_extra_fields_ignored(self):
        message = Message.model_validate({"role": "user", "object": "thread.message", "thread_id": "t"})
        assert message.content == []


class TestRun:
    """Tests for Run.tool_invocations()."""

    def _run(self, tool_calls, action_type="submit_tool_outputs"):
        return Run.model_validate(
            {
                "id": "run_1",
                "status": "requires_action",
                "required_action": {"type": action_type, "submit_tool_outputs": {"tool_calls": tool_calls}},
            }
        )

    def test_invocations_in_order(self):
        run = self._run(
            [
                {"id": "call_b", "type": "function", "function": {"name": "addMarker", "arguments": '{"label": "x"}'}},
                {"id": "call_a", "type": "function", "function": {"name": "updateMap", "arguments": ""}},
            ]
        )

        assert run.tool_invocations() == [
            ToolInvocation("call_b", "addMarker", {"label": "x"}),
            ToolInvocation("call_a", "updateMap", {}),
        ]

    def test_non_function_calls_skipped(self):
        run = self._run([{"id": "call_1", "type": "code_interpreter"}])
        assert run.tool_invocations() == []

    def test_other_action_type(self):
        run = self._run([], action_type="other")
        assert run.tool_invocations() == []

    def test_no_required_action(self):
        assert Run(id="run_1", status=RunStatus.IN_PROGRESS).tool_invocations() == []


class TestToolInvocation:
    def test_invalid_json(self):
        invocation = ToolInvocation.from_encoded("call_1", "updateMap", "{oops")

        assert invocation.arguments == {}
        assert invocation.argument_error.startswith("invalid JSON arguments")

    def test_non_object_json(self):
        invocation = ToolInvocation.from_encoded("call_1", "updateMap", "[1, 2]")
        assert invocation.argument_error == "expected a JSON object, got list"


class TestToolResult:
    def test_wire_format(self):
        assert ToolResult("call_1", "Map updated").to_wire() == {"tool_call_id": "call_1", "output": "Map updated"}

    def test_failure_flag_not_sent(self):
        assert "failed" not in ToolResult("call_1", "Error: x", failed=True).to_wire()


class TestListResponse:
    def test_status_without_run(self):
        listing = ListResponse.model_validate({"messages": [], "status": "queued"})

        assert listing.run is None
        assert listing.status == RunStatus.QUEUED
