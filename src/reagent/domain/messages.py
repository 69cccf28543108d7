"""Conversation message model shared by agents, memories, and formatters."""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, PrivateAttr

from reagent.domain.content import (
    BlockType,
    ContentBlock,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
    blocks_text,
)
from reagent.domain.exceptions import MessageSealedError
from reagent.domain.ids import new_uuid

Role = Literal["system", "user", "assistant"]
MessageContent = Union[str, List[ContentBlock]]


class Msg(BaseModel):
    """A single conversation message.

    Content is either plain text or an ordered list of content blocks. A message may
    be mutated while it is being assembled (for example while a stream is still
    arriving); once a memory logs it, the message is sealed and its content can no
    longer be replaced.
    """

    name: str = Field(description="Name of the speaker that emitted the message.")
    content: MessageContent = Field(description="Plain text or structured blocks.")
    role: Role = Field(description="Conversation role of the speaker.")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    id: str = Field(default_factory=new_uuid)

    _sealed: bool = PrivateAttr(default=False)

    @classmethod
    def system(cls, content: str, name: str = "system") -> "Msg":
        """Build a system message."""

        return cls(name=name, content=content, role="system")

    @classmethod
    def user(cls, content: MessageContent, name: str = "user") -> "Msg":
        """Build a user message."""

        return cls(name=name, content=content, role="user")

    @classmethod
    def assistant(cls, content: MessageContent, name: str = "assistant") -> "Msg":
        """Build an assistant message."""

        return cls(name=name, content=content, role="assistant")

    @classmethod
    def tool_results(
        cls, results: List[ToolResultBlock], name: str = "system"
    ) -> "Msg":
        """Build the message that carries action results back into the log."""

        return cls(name=name, content=list(results), role="system")

    @property
    def sealed(self) -> bool:
        """Whether the message has been appended to a log."""

        return self._sealed

    def seal(self) -> None:
        """Freeze the content representation of this message."""

        self._sealed = True

    def to_blocks(self) -> List[Any]:
        """Return the content as a block list, converting plain text explicitly."""

        if isinstance(self.content, str):
            return [TextBlock(text=self.content)]
        return list(self.content)

    def get_text_content(self) -> str:
        """Return the text of the message, joining text blocks with newlines."""

        if isinstance(self.content, str):
            return self.content
        return blocks_text(self.content)

    def get_content_blocks(self, block_type: Optional[BlockType] = None) -> List[Any]:
        """Return content blocks, optionally filtered by block type.

        Args:
            block_type: Block type to keep, or None for all blocks.

        Returns:
            The matching blocks in content order.
        """

        blocks = self.to_blocks()
        if block_type is None:
            return blocks
        return [block for block in blocks if block.type == block_type]

    def get_tool_calls(self) -> List[ToolUseBlock]:
        """Return the action requests carried by this message."""

        return self.get_content_blocks("tool_use")

    def has_content_blocks(self, block_type: BlockType) -> bool:
        """Return whether at least one block of the given type is present."""

        return bool(self.get_content_blocks(block_type))

    def set_content(self, content: MessageContent) -> None:
        """Replace the content of an unsealed message.

        Raises:
            MessageSealedError: If the message has already been logged.
        """

        self._ensure_mutable()
        self.content = content

    def add_content_block(self, block: Any) -> None:
        """Append a block, converting plain-text content to blocks first."""

        self._ensure_mutable()
        blocks = self.to_blocks()
        blocks.append(block)
        self.content = blocks

    def clone(self) -> "Msg":
        """Return an unsealed deep copy that keeps the same id."""

        copied = self.model_copy(deep=True)
        copied._sealed = False
        return copied

    def _ensure_mutable(self) -> None:
        if self._sealed:
            raise MessageSealedError(
                f"Message {self.id} from '{self.name}' is already logged."
            )
