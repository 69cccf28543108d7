from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from reagent.domain.content import ContentBlock, ToolUseBlock
from reagent.domain.ids import new_uuid


class ChatResponse(BaseModel):
    """A complete model response, or the accumulated state of a streamed one."""

    content: List[ContentBlock] = Field(
        default_factory=list, description="Ordered content blocks produced so far."
    )
    is_last: bool = Field(
        default=True, description="Whether the model has finished producing output."
    )
    usage: Optional[Dict[str, Any]] = Field(
        default=None, description="Provider usage metadata if available."
    )
    id: str = Field(default_factory=new_uuid)

    @property
    def tool_calls(self) -> List[ToolUseBlock]:
        """Action requests contained in the response."""

        return [block for block in self.content if isinstance(block, ToolUseBlock)]
