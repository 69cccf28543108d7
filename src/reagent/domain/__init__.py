from reagent.domain.content import (
    ContentBlock,
    TextBlock,
    ThinkingBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from reagent.domain.exceptions import (
    HookRegistrationError,
    MessageSealedError,
    MissingArgumentError,
    ModelResponseError,
    ReagentError,
    StructuredOutputError,
    ToolContractError,
    ToolNotFoundError,
)
from reagent.domain.hooks import BASE_POINTS, REACT_POINTS, Hookable, HookTable, LifecyclePoint
from reagent.domain.messages import Msg
from reagent.domain.state import LoopState
from reagent.domain.tool import (
    ABSENT,
    ToolDescriptor,
    ToolParameter,
    ToolResponse,
    error_response,
    stream_response,
    success_response,
)

__all__ = [
    "ABSENT",
    "BASE_POINTS",
    "ContentBlock",
    "HookRegistrationError",
    "HookTable",
    "Hookable",
    "LifecyclePoint",
    "LoopState",
    "MessageSealedError",
    "MissingArgumentError",
    "ModelResponseError",
    "Msg",
    "REACT_POINTS",
    "ReagentError",
    "StructuredOutputError",
    "TextBlock",
    "ThinkingBlock",
    "ToolContractError",
    "ToolDescriptor",
    "ToolNotFoundError",
    "ToolParameter",
    "ToolResponse",
    "ToolResultBlock",
    "ToolUseBlock",
    "error_response",
    "stream_response",
    "success_response",
]
