"""Content units carried by structured message content."""

from typing import Annotated, Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field

from reagent.domain.ids import short_uuid


class TextBlock(BaseModel):
    """Plain text produced by a model, user, or tool."""

    type: Literal["text"] = "text"
    text: str = ""


class ThinkingBlock(BaseModel):
    """Model reasoning that is shown but never sent back to the model."""

    type: Literal["thinking"] = "thinking"
    thinking: str = ""


class ToolUseBlock(BaseModel):
    """A request to invoke a named action with named arguments."""

    type: Literal["tool_use"] = "tool_use"
    id: str = Field(default_factory=short_uuid)
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)


class ToolResultBlock(BaseModel):
    """The outcome of one ToolUseBlock, paired by id."""

    type: Literal["tool_result"] = "tool_result"
    id: str
    name: str
    output: str = ""


ContentBlock = Annotated[
    Union[TextBlock, ThinkingBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]

BlockType = Literal["text", "thinking", "tool_use", "tool_result"]


def blocks_text(blocks: List[Any], separator: str = "\n") -> str:
    """Join the text of every TextBlock in a block list.

    Args:
        blocks: Content blocks to scan.
        separator: String placed between text fragments.

    Returns:
        The joined text, or an empty string when there is none.
    """

    return separator.join(
        block.text for block in blocks if isinstance(block, TextBlock)
    )
