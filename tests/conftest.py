"""Shared fakes for agent tests."""

from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple, Union

import pytest

from reagent.domain.content import TextBlock, ThinkingBlock, ToolUseBlock
from reagent.domain.messages import Msg
from reagent.engine.react_agent import ReActAgent
from reagent.engine.toolkit import Toolkit
from reagent.infra.console_sink import SinkBase
from reagent.infra.formatter import FormatterBase
from reagent.llm.chat_model import ChatModelBase
from reagent.llm.chat_response import ChatResponse

ScriptItem = Union[ChatResponse, List[ChatResponse], Exception]


def text_response(text: str, thinking: Optional[str] = None) -> ChatResponse:
    """Builds a complete response holding plain text."""
    content: List[Any] = []
    if thinking is not None:
        content.append(ThinkingBlock(thinking=thinking))
    content.append(TextBlock(text=text))
    return ChatResponse(content=content)


def tool_response(*calls: Tuple[str, Dict[str, Any]]) -> ChatResponse:
    """Builds a complete response requesting the given actions in order."""
    return ChatResponse(
        content=[ToolUseBlock(name=name, input=dict(args)) for name, args in calls]
    )


def streamed_text(*fragments: str) -> List[ChatResponse]:
    """Builds accumulated partial responses for the given text fragments."""
    chunks: List[ChatResponse] = []
    text = ""
    for index, fragment in enumerate(fragments):
        text += fragment
        chunks.append(
            ChatResponse(
                content=[TextBlock(text=text)], is_last=index == len(fragments) - 1
            )
        )
    return chunks


class ScriptedModel(ChatModelBase):
    """
    Model gateway replaying scripted outputs.

    A list entry is replayed as a stream; an exception entry is raised. Once the
    script runs out the last entry is repeated.

    Args:
        script: Outputs returned by successive calls.
    """

    def __init__(self, script: Sequence[ScriptItem]) -> None:
        super().__init__(model_name="scripted")
        self.script = list(script)
        self.calls: List[Dict[str, Any]] = []

    async def __call__(self, messages, tools=None):
        self.calls.append({"messages": list(messages), "tools": tools})
        index = min(len(self.calls) - 1, len(self.script) - 1)
        item = self.script[index]
        if isinstance(item, Exception):
            raise item
        if isinstance(item, list):
            return self._stream(item)
        return item

    @staticmethod
    async def _stream(chunks: List[ChatResponse]) -> AsyncIterator[ChatResponse]:
        for chunk in chunks:
            yield chunk


class PassthroughFormatter(FormatterBase):
    """Formatter returning the messages unchanged."""

    def format(self, msgs):
        return list(msgs)


class RecordingSink(SinkBase):
    """Sink that records every emitted message state."""

    def __init__(self) -> None:
        self.events: List[Tuple[Msg, bool]] = []

    async def emit(self, msg: Msg, last: bool) -> None:
        self.events.append((msg.clone(), last))

    def texts(self) -> List[str]:
        return [msg.get_text_content() for msg, _ in self.events]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def make_agent(sink: RecordingSink):
    """Factory building a ReAct agent around a scripted model."""

    def _make(
        script: Sequence[ScriptItem],
        toolkit: Optional[Toolkit] = None,
        **kwargs: Any,
    ) -> ReActAgent:
        return ReActAgent(
            name="Friday",
            sys_prompt="You are a helpful assistant named Friday.",
            model=ScriptedModel(script),
            formatter=PassthroughFormatter(),
            toolkit=toolkit,
            sink=sink,
            **kwargs,
        )

    return _make
