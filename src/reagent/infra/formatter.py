"""Conversion of logged messages into backend message objects."""

from abc import ABC, abstractmethod
from typing import Any, List, Sequence

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)

from reagent.domain.content import TextBlock, ToolResultBlock, ToolUseBlock
from reagent.domain.messages import Msg


class FormatterBase(ABC):
    """Pure conversion from messages to a backend-specific representation."""

    @abstractmethod
    def format(self, msgs: Sequence[Msg]) -> List[Any]:
        """
        Converts messages for a model gateway.

        Args:
            msgs: Messages in conversation order.

        Returns:
            The backend representation.
        """
        raise NotImplementedError


class LangChainFormatter(FormatterBase):
    """
    Formats messages as LangChain chat messages.

    Action results become ToolMessages paired by id with the AIMessage tool calls
    that requested them; thinking blocks are not sent back to the model.

    Args:
        include_names: Whether to attach speaker names to user and assistant messages.
    """

    def __init__(self, include_names: bool = True) -> None:
        self.include_names = include_names

    def format(self, msgs: Sequence[Msg]) -> List[BaseMessage]:
        formatted: List[BaseMessage] = []
        for msg in msgs:
            formatted.extend(self._format_one(msg))
        return formatted

    def _format_one(self, msg: Msg) -> List[BaseMessage]:
        blocks = msg.to_blocks()
        results = [block for block in blocks if isinstance(block, ToolResultBlock)]
        text = "\n".join(block.text for block in blocks if isinstance(block, TextBlock))
        name = {"name": msg.name} if self.include_names else {}

        if msg.role == "assistant":
            tool_calls = [
                {"name": block.name, "args": dict(block.input), "id": block.id}
                for block in blocks
                if isinstance(block, ToolUseBlock)
            ]
            return [AIMessage(content=text, tool_calls=tool_calls, **name)]

        messages: List[BaseMessage] = []
        if results:
            messages.extend(
                ToolMessage(content=result.output, tool_call_id=result.id, name=result.name)
                for result in results
            )
            if not text:
                return messages

        if msg.role == "system":
            messages.append(SystemMessage(content=text))
        else:
            messages.append(HumanMessage(content=text, **name))
        return messages
