"""Tests for the message model and content blocks."""

import pytest

from reagent.domain.content import TextBlock, ThinkingBlock, ToolResultBlock, ToolUseBlock
from reagent.domain.exceptions import MessageSealedError
from reagent.domain.messages import Msg


def test_plain_text_converts_to_single_block() -> None:
    """Plain text is exposed as one text block on explicit conversion."""
    msg = Msg.user("hello")

    blocks = msg.to_blocks()

    assert len(blocks) == 1
    assert isinstance(blocks[0], TextBlock)
    assert blocks[0].text == "hello"
    assert msg.get_text_content() == "hello"


def test_text_content_joins_text_blocks_only() -> None:
    """Thinking and action blocks do not contribute to the text."""
    msg = Msg.assistant(
        [
            ThinkingBlock(thinking="hmm"),
            TextBlock(text="a"),
            ToolUseBlock(name="tool", input={}),
            TextBlock(text="b"),
        ]
    )

    assert msg.get_text_content() == "a\nb"
    assert len(msg.get_tool_calls()) == 1
    assert msg.has_content_blocks("thinking")
    assert not msg.has_content_blocks("tool_result")


def test_blocks_parse_from_dicts_by_type() -> None:
    """Structured content is discriminated on the block type."""
    msg = Msg(
        name="system",
        role="system",
        content=[{"type": "tool_result", "id": "1", "name": "t", "output": "ok"}],
    )

    assert isinstance(msg.content[0], ToolResultBlock)


def test_sealed_message_rejects_mutation() -> None:
    """Once sealed, content can no longer be replaced or extended."""
    msg = Msg.assistant([])
    msg.set_content([TextBlock(text="partial")])
    msg.seal()

    with pytest.raises(MessageSealedError):
        msg.set_content("other")
    with pytest.raises(MessageSealedError):
        msg.add_content_block(TextBlock(text="more"))
    assert msg.get_text_content() == "partial"


def test_clone_is_unsealed_and_independent() -> None:
    """Cloning keeps the id but not the seal."""
    msg = Msg.assistant([TextBlock(text="x")])
    msg.seal()

    copied = msg.clone()
    copied.add_content_block(TextBlock(text="y"))

    assert copied.id == msg.id
    assert not copied.sealed
    assert msg.get_text_content() == "x"


def test_tool_results_message_uses_system_role() -> None:
    """Action results travel back in a system message."""
    msg = Msg.tool_results([ToolResultBlock(id="1", name="t", output="done")])

    assert msg.role == "system"
    assert msg.name == "system"
