"""Wire models for the relay protocol.

Message and run payloads mirror the Assistants API objects the relay
forwards verbatim; fields the client does not use are ignored.
"""

import json
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RunStatus(StrEnum):
    """Remote run status."""

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    REQUIRES_ACTION = "requires_action"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"
    FAILED = "failed"
    COMPLETED = "completed"
    INCOMPLETE = "incomplete"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATUSES

    def is_regression_from(self, previous: "RunStatus") -> bool:
        """Check whether moving from ``previous`` to this status goes backwards.

        ``in_progress`` and ``requires_action`` share a rank so the tool
        cycle can alternate between them.
        """
        return _STATUS_RANK[self] < _STATUS_RANK[previous]


_TERMINAL_STATUSES = frozenset(
    {
        RunStatus.CANCELLED,
        RunStatus.FAILED,
        RunStatus.COMPLETED,
        RunStatus.INCOMPLETE,
        RunStatus.EXPIRED,
    }
)

_STATUS_RANK = {
    RunStatus.QUEUED: 0,
    RunStatus.IN_PROGRESS: 1,
    RunStatus.REQUIRES_ACTION: 1,
    RunStatus.CANCELLING: 2,
    RunStatus.CANCELLED: 3,
    RunStatus.FAILED: 3,
    RunStatus.COMPLETED: 3,
    RunStatus.INCOMPLETE: 3,
    RunStatus.EXPIRED: 3,
}


class TextValue(BaseModel):
    value: str
    annotations: list[dict[str, Any]] = Field(default_factory=list)


class ContentPart(BaseModel):
    """One part of a message's content.

    Only ``text`` parts carry a ``text`` value; other part types (images,
    files) keep their payload as extra fields.
    """

    model_config = ConfigDict(extra="allow")

    type: str
    text: TextValue | None = None

    @property
    def is_text(self) -> bool:
        return self.type == "text" and self.text is not None


class Message(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    role: str
    content: list[ContentPart] = Field(default_factory=list)
    created_at: int | None = None

    def text_parts(self) -> list[str]:
        """Return the text values of this message, skipping non-text parts."""
        return [part.text.value for part in self.content if part.is_text and part.text]


class FunctionCall(BaseModel):
    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    type: str = "function"
    function: FunctionCall | None = None


class SubmitToolOutputs(BaseModel):
    tool_calls: list[ToolCall] = Field(default_factory=list)


class RequiredAction(BaseModel):
    type: str
    submit_tool_outputs: SubmitToolOutputs | None = None


class RunError(BaseModel):
    code: str | None = None
    message: str | None = None


class Run(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    status: RunStatus
    required_action: RequiredAction | None = None
    last_error: RunError | None = None

    def tool_invocations(self) -> list["ToolInvocation"]:
        """Extract the function calls the run is waiting on.

        Returns:
            One ToolInvocation per pending function call, in the order the
            run listed them. Empty unless the run requires tool outputs.
        """
        action = self.required_action
        if action is None or action.type != "submit_tool_outputs" or action.submit_tool_outputs is None:
            return []

        return [
            ToolInvocation.from_encoded(call.id, call.function.name, call.function.arguments)
            for call in action.submit_tool_outputs.tool_calls
            if call.type == "function" and call.function is not None
        ]


class ListResponse(BaseModel):
    """Body returned by the relay's message listing endpoint."""

    model_config = ConfigDict(extra="ignore")

    messages: list[Message] = Field(default_factory=list)
    run: Run | None = None
    status: RunStatus | None = None


@dataclass(frozen=True)
class ToolInvocation:
    """A remote request to run a local function.

    Attributes:
        invocation_id: The remote tool call ID; echoed back in the result.
        function_name: Name of the function to run.
        arguments: Decoded arguments.
        argument_error: Why the encoded arguments could not be decoded, if they could not.
    """

    invocation_id: str
    function_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    argument_error: str | None = None

    @classmethod
    def from_encoded(cls, invocation_id: str, function_name: str, encoded: str) -> "ToolInvocation":
        """Build an invocation from JSON-encoded arguments.

        An empty string means no arguments. Undecodable or non-object
        arguments are recorded in ``argument_error`` rather than raised so
        the invocation still gets a result.
        """
        if not encoded:
            return cls(invocation_id, function_name)
        try:
            decoded = json.loads(encoded)
        except json.JSONDecodeError as e:
            return cls(invocation_id, function_name, argument_error=f"invalid JSON arguments: {e}")
        if not isinstance(decoded, dict):
            return cls(
                invocation_id,
                function_name,
                argument_error=f"expected a JSON object, got {type(decoded).__name__}",
            )
        return cls(invocation_id, function_name, arguments=decoded)


@dataclass(frozen=True)
class ToolResult:
    """Output of one tool invocation."""

    invocation_id: str
    output: str
    failed: bool = False

    def to_wire(self) -> dict[str, str]:
        return {"tool_call_id": self.invocation_id, "output": self.output}
