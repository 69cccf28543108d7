"""Tests for LangChain message formatting."""

from langchain_core.messages import AIMessage, HumanMessage, SystemMessage, ToolMessage

from reagent.domain.content import TextBlock, ThinkingBlock, ToolResultBlock, ToolUseBlock
from reagent.domain.messages import Msg
from reagent.infra.formatter import LangChainFormatter


def test_roles_map_to_langchain_messages() -> None:
    """System, user, and assistant messages map to their LangChain types."""
    formatted = LangChainFormatter().format(
        [Msg.system("rules"), Msg.user("hi", name="alice"), Msg.assistant("hello", name="bot")]
    )

    assert isinstance(formatted[0], SystemMessage)
    assert isinstance(formatted[1], HumanMessage)
    assert formatted[1].name == "alice"
    assert isinstance(formatted[2], AIMessage)
    assert formatted[2].content == "hello"


def test_actions_and_results_are_paired_by_id() -> None:
    """Action requests become tool calls and results become tool messages."""
    request = ToolUseBlock(id="call-1", name="search", input={"query": "q"})
    formatted = LangChainFormatter().format(
        [
            Msg.assistant([ThinkingBlock(thinking="hidden"), TextBlock(text="let me look"), request]),
            Msg.tool_results([ToolResultBlock(id="call-1", name="search", output="found")]),
        ]
    )

    ai_message, tool_message = formatted
    assert ai_message.content == "let me look"
    assert ai_message.tool_calls[0]["id"] == "call-1"
    assert ai_message.tool_calls[0]["args"] == {"query": "q"}
    assert isinstance(tool_message, ToolMessage)
    assert tool_message.tool_call_id == "call-1"
    assert tool_message.content == "found"


def test_names_can_be_omitted() -> None:
    """Speaker names are optional."""
    formatted = LangChainFormatter(include_names=False).format([Msg.user("hi", name="alice")])

    assert formatted[0].name is None
