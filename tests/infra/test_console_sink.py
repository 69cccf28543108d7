"""Tests for the rich console sink."""

import io

import pytest
from rich.console import Console

from reagent.domain.content import TextBlock, ToolUseBlock
from reagent.domain.messages import Msg
from reagent.infra.console_sink import ConsoleSink


def _sink() -> tuple:
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=False, width=200)
    return ConsoleSink(console), buffer


@pytest.mark.asyncio
async def test_streamed_text_is_written_once() -> None:
    """Only the unseen suffix of an accumulated message is written."""
    sink, buffer = _sink()
    msg = Msg.assistant([TextBlock(text="Hel")], name="bot")

    await sink.emit(msg, False)
    msg.set_content([TextBlock(text="Hello")])
    await sink.emit(msg, True)

    assert buffer.getvalue() == "bot: Hello\n"


@pytest.mark.asyncio
async def test_non_text_blocks_render_when_final() -> None:
    """Action requests are written as JSON once the message is final."""
    sink, buffer = _sink()
    msg = Msg.assistant([ToolUseBlock(id="c1", name="search", input={"q": "x"})], name="bot")

    await sink.emit(msg, False)
    assert buffer.getvalue() == ""

    await sink.emit(msg, True)
    output = buffer.getvalue()
    assert output.startswith("bot: {")
    assert '"name": "search"' in output
