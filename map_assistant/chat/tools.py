"""Registry of local functions the assistant may invoke.

The assistant names functions by string; the registry only accepts names
that are members of ``FunctionTag`` and have a registered ``ToolSpec``.
Anything else is rejected with ``UnknownFunctionError``.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Protocol

from pydantic import BaseModel

from map_assistant.chat.exceptions import UnknownFunctionError


class FunctionTag(StrEnum):
    """Function names the assistant is configured with."""

    UPDATE_MAP = "updateMap"
    ADD_MARKER = "addMarker"

    @classmethod
    def parse(cls, name: str, invocation_id: str | None = None) -> "FunctionTag":
        """Resolve a remote function name to a tag.

        Raises:
            UnknownFunctionError: If ``name`` is not an exact member value.
        """
        try:
            return cls(name)
        except ValueError:
            raise UnknownFunctionError(name, invocation_id=invocation_id) from None


class ToolHandler(Protocol):
    """Callable run for one invocation; returns the output sent back to the run."""

    def __call__(self, arguments: Any) -> str: ...


@dataclass(frozen=True)
class ToolSpec:
    """A registered function.

    Attributes:
        tag: The function's name.
        description: Description shown to the assistant.
        arguments_model: Pydantic model the raw arguments are validated into.
        handler: Receives the validated arguments model.
    """

    tag: FunctionTag
    description: str
    arguments_model: type[BaseModel]
    handler: ToolHandler

    def invoke(self, arguments: Mapping[str, Any]) -> str:
        """Validate ``arguments`` and run the handler.

        Raises:
            pydantic.ValidationError: If the arguments do not fit the model.
        """
        return self.handler(self.arguments_model.model_validate(arguments))

    def definition(self) -> dict[str, Any]:
        """Render the function definition in the Assistants API tool format."""
        schema = self.arguments_model.model_json_schema()
        schema.pop("title", None)
        for prop in schema.get("properties", {}).values():
            prop.pop("title", None)
        return {
            "type": "function",
            "function": {
                "name": str(self.tag),
                "description": self.description,
                "parameters": schema,
            },
        }


class ToolRegistry:
    """Static mapping from function tag to tool spec."""

    def __init__(self, specs: Iterable[ToolSpec] = ()) -> None:
        self._specs: dict[FunctionTag, ToolSpec] = {}
        for spec in specs:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        """Register a tool.

        Raises:
            ValueError: If the tag is already registered.
        """
        if spec.tag in self._specs:
            raise ValueError(f"Function {spec.tag!s} is already registered")
        self._specs[spec.tag] = spec

    def resolve(self, name: str, invocation_id: str | None = None) -> ToolSpec:
        """Look up a tool by its exact remote name.

        Raises:
            UnknownFunctionError: If the name is not a known tag or has no handler.
        """
        tag = FunctionTag.parse(name, invocation_id=invocation_id)
        spec = self._specs.get(tag)
        if spec is None:
            raise UnknownFunctionError(name, invocation_id=invocation_id)
        return spec

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and any(str(tag) == name for tag in self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    @property
    def names(self) -> list[str]:
        return [str(tag) for tag in self._specs]

    def definitions(self) -> list[dict[str, Any]]:
        """Function definitions for every registered tool, in registration order."""
        return [spec.definition() for spec in self._specs.values()]
