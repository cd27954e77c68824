"""Unit tests for chat layer exceptions."""

from map_assistant.chat.exceptions import (
    ChatError,
    ConflictError,
    PartialSubmissionError,
    RunFailedError,
    UnknownFunctionError,
)


class TestChatErrors:
    def test_conflict_error(self):
        error = ConflictError("A run is already active", run_id="run_1")
        assert str(error) == "A run is already active [run: run_1]"
        assert isinstance(error, ChatError)

    def test_unknown_function_error(self):
        error = UnknownFunctionError("launchRocket", invocation_id="call_1")
        assert str(error) == "Unknown function requested: 'launchRocket'"

    def test_partial_submission_error(self):
        error = PartialSubmissionError(missing={"call_b", "call_a"}, unexpected=["call_z"])
        assert error.missing == ["call_a", "call_b"]
        assert str(error) == "Tool results do not match pending invocations: missing call_a, call_b; unexpected call_z"

    def test_run_failed_error(self):
        error = RunFailedError("run_1", "failed", message="model overloaded")
        assert str(error) == "Run run_1 ended with status failed: model overloaded"
        assert RunFailedError("run_1", "expired").remote_message is None
