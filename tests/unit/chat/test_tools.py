"""Unit tests for the tool registry."""

import pytest
from pydantic import BaseModel, ValidationError

from map_assistant.chat.exceptions import UnknownFunctionError
from map_assistant.chat.map_view import MapView, create_map_registry
from map_assistant.chat.tools import FunctionTag, ToolRegistry, ToolSpec


class EchoArguments(BaseModel):
    text: str


def echo_spec(tag: FunctionTag = FunctionTag.ADD_MARKER) -> ToolSpec:
    return ToolSpec(tag=tag, description="Echo the text.", arguments_model=EchoArguments, handler=lambda args: args.text)


class TestFunctionTag:
    def test_parse_known_name(self):
        assert FunctionTag.parse("updateMap") is FunctionTag.UPDATE_MAP

    @pytest.mark.parametrize("name", ["updatemap", "UpdateMap", "update_map", " addMarker", ""])
    def test_parse_requires_exact_name(self, name):
        """Names are matched exactly, never normalized."""
        with pytest.raises(UnknownFunctionError) as exc_info:
            FunctionTag.parse(name, invocation_id="call_1")

        assert exc_info.value.function_name == name
        assert exc_info.value.invocation_id == "call_1"


class TestToolSpec:
    def test_invoke_validates_arguments(self):
        assert echo_spec().invoke({"text": "hi"}) == "hi"

    def test_invoke_rejects_bad_arguments(self):
        with pytest.raises(ValidationError):
            echo_spec().invoke({})

    def test_definition_format(self):
        definition = echo_spec().definition()

        assert definition["type"] == "function"
        assert definition["function"]["name"] == "addMarker"
        assert definition["function"]["description"] == "Echo the text."
        parameters = definition["function"]["parameters"]
        assert parameters["required"] == ["text"]
        assert "title" not in parameters
        assert "title" not in parameters["properties"]["text"]


class TestToolRegistry:
    """Tests for ToolRegistry."""

    def test_resolve_registered(self):
        spec = echo_spec()
        registry = ToolRegistry([spec])

        assert registry.resolve("addMarker") is spec
        assert "addMarker" in registry
        assert len(registry) == 1

    def test_resolve_tag_without_handler(self):
        """A valid tag with nothing registered is still unknown."""
        registry = ToolRegistry([echo_spec()])

        with pytest.raises(UnknownFunctionError):
            registry.resolve("updateMap")
        assert "updateMap" not in registry

    def test_duplicate_registration(self):
        registry = ToolRegistry([echo_spec()])

        with pytest.raises(ValueError, match="already registered"):
            registry.register(echo_spec())

    def test_map_registry(self):
        registry = create_map_registry(MapView())

        assert registry.names == ["updateMap", "addMarker"]
        assert [d["function"]["name"] for d in registry.definitions()] == ["updateMap", "addMarker"]

    def test_map_definitions_carry_bounds(self):
        update_map = create_map_registry(MapView()).definitions()[0]["function"]["parameters"]

        assert set(update_map["required"]) == {"longitude", "latitude", "zoom"}
        assert update_map["properties"]["latitude"]["maximum"] == 90
