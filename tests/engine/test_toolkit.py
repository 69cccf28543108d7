"""Tests for tool registration, equipping, and invocation."""

from typing import List, Optional

import pytest
from pydantic import BaseModel

from reagent.domain.content import ToolUseBlock
from reagent.domain.exceptions import ToolNotFoundError
from reagent.domain.tool import ABSENT, ToolResponse, stream_response
from reagent.engine.toolkit import Toolkit


async def _collect(toolkit: Toolkit, name: str, **arguments) -> List[ToolResponse]:
    call = ToolUseBlock(name=name, input=arguments)
    return [chunk async for chunk in toolkit.call_tool_function(call)]


def add(a: int, b: int) -> str:
    """Add two numbers.

    Longer description that is not shown.
    """
    return str(a + b)


def test_descriptor_is_derived_from_signature() -> None:
    """Names, types, and required flags come from the function."""
    toolkit = Toolkit()

    def greet(name: str, times: int = 1) -> str:
        return name * times

    descriptor = toolkit.register_tool_function(greet)

    assert descriptor.name == "greet"
    assert [param.name for param in descriptor.parameters] == ["name", "times"]
    assert descriptor.parameters[1].schema_ == {"type": "integer"}
    assert descriptor.required_names == ["name"]
    assert toolkit.register_tool_function(add).description == "Add two numbers."


@pytest.mark.asyncio
async def test_call_maps_named_arguments_to_positions() -> None:
    """Named arguments are passed positionally in descriptor order."""
    toolkit = Toolkit()
    toolkit.register_tool_function(add)

    results = await _collect(toolkit, "add", b=2, a=1)

    assert len(results) == 1
    assert results[0].get_text_content() == "3"
    assert results[0].is_last


@pytest.mark.asyncio
async def test_missing_required_argument_fails_without_raising() -> None:
    """Supplying only one of two required parameters yields a failed result."""
    toolkit = Toolkit()
    toolkit.register_tool_function(add)

    results = await _collect(toolkit, "add", a=1)

    assert len(results) == 1
    assert results[0].metadata["success"] is False
    assert "b" in results[0].get_text_content()


@pytest.mark.asyncio
async def test_unknown_and_unequipped_tools_fail() -> None:
    """Only equipped tools resolve; unequipping keeps the registration."""
    toolkit = Toolkit()
    toolkit.register_tool_function(add)
    toolkit.unequip("add")

    unequipped = await _collect(toolkit, "add", a=1, b=2)
    unknown = await _collect(toolkit, "nope")

    assert unequipped[0].metadata["success"] is False
    assert unknown[0].metadata["success"] is False
    assert toolkit.has_tool_function("add")
    assert toolkit.get_equipped_tools() == []

    toolkit.equip("add")
    assert (await _collect(toolkit, "add", a=1, b=2))[0].get_text_content() == "3"


def test_map_arguments_uses_absent_for_optional() -> None:
    """Omitted optional parameters map to the placeholder."""
    toolkit = Toolkit()

    def search(query: str, limit: int = 5, exact: bool = False) -> str:
        return query

    descriptor = toolkit.register_tool_function(search)
    positional, extras = Toolkit.map_arguments(
        descriptor, {"query": "q", "exact": True, "other": 1}
    )

    assert positional == ["q", ABSENT, True]
    assert extras == {"other": 1}


@pytest.mark.asyncio
async def test_absent_optional_uses_function_default() -> None:
    """Later parameters still arrive when an earlier optional one is omitted."""
    toolkit = Toolkit()

    def describe(query: str, limit: int = 5, exact: bool = False) -> str:
        return f"{query}:{limit}:{exact}"

    toolkit.register_tool_function(describe)

    results = await _collect(toolkit, "describe", query="q", exact=True)

    assert results[0].get_text_content() == "q:5:True"


@pytest.mark.asyncio
async def test_execution_error_is_converted() -> None:
    """Exceptions raised by a tool become a failed result."""
    toolkit = Toolkit()

    async def broken() -> str:
        raise RuntimeError("disk on fire")

    toolkit.register_tool_function(broken)

    results = await _collect(toolkit, "broken")

    assert results[0].metadata["success"] is False
    assert "disk on fire" in results[0].get_text_content()


@pytest.mark.asyncio
async def test_streaming_and_generator_tools_are_normalized() -> None:
    """Async iterators and generators produce incremental results in order."""
    toolkit = Toolkit()

    def chunks() -> ToolResponse:
        return stream_response(["a", "b"])

    def lines():
        yield "x"
        yield "y"

    toolkit.register_tool_function(chunks)
    toolkit.register_tool_function(lines)

    streamed = await _collect(toolkit, "chunks")
    generated = await _collect(toolkit, "lines")

    assert [chunk.get_text_content() for chunk in streamed] == ["a", "b"]
    assert streamed[-1].is_last
    assert [chunk.get_text_content() for chunk in generated] == ["x", "y"]


@pytest.mark.asyncio
async def test_extra_arguments_only_reach_var_keyword_functions() -> None:
    """Undeclared arguments are passed only when the function accepts them."""
    toolkit = Toolkit()

    def strict(value: str) -> str:
        return value

    def loose(value: str, **kwargs) -> str:
        return f"{value}:{sorted(kwargs)}"

    toolkit.register_tool_function(strict)
    toolkit.register_tool_function(loose)

    assert (await _collect(toolkit, "strict", value="v", other=1))[0].get_text_content() == "v"
    assert (
        await _collect(toolkit, "loose", value="v", other=1)
    )[0].get_text_content() == "v:['other']"


def test_reset_equipped_tools_validates_names() -> None:
    """Unknown names leave the equipped set unchanged."""
    toolkit = Toolkit()
    toolkit.register_tool_function(add)

    def other() -> str:
        return ""

    toolkit.register_tool_function(other)

    toolkit.reset_equipped_tools(["other"])
    assert toolkit.get_equipped_tools() == ["other"]

    with pytest.raises(ToolNotFoundError):
        toolkit.reset_equipped_tools(["add", "ghost"])
    assert toolkit.get_equipped_tools() == ["other"]
    assert sorted(toolkit.get_all_tools()) == ["add", "other"]


def test_extended_model_is_merged_into_schema() -> None:
    """A structured model adds its fields to the presented schema."""

    class Report(BaseModel):
        title: str
        score: Optional[int] = None

    toolkit = Toolkit()
    toolkit.register_tool_function(
        lambda response, **kwargs: response,
        name="finish",
        parameters={
            "type": "object",
            "properties": {"response": {"type": "string"}},
            "required": ["response"],
        },
    )
    toolkit.set_extended_model("finish", Report)

    parameters = toolkit.get_json_schemas()[0]["function"]["parameters"]

    assert list(parameters["properties"]) == ["response", "title", "score"]
    assert parameters["required"] == ["response", "title"]

    toolkit.set_extended_model("finish", None)
    parameters = toolkit.get_json_schemas()[0]["function"]["parameters"]
    assert list(parameters["properties"]) == ["response"]


def test_remove_and_clear() -> None:
    """Removal drops both registration and equipped membership."""
    toolkit = Toolkit()
    toolkit.register_tool_function(add)

    assert toolkit.remove_tool_function("add") is True
    assert toolkit.remove_tool_function("add") is False
    assert toolkit.get_json_schemas() == []

    toolkit.register_tool_function(add)
    toolkit.clear()
    assert toolkit.get_all_tools() == []
