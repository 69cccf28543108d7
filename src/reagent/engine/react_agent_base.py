"""Agent variant that adds reasoning and acting lifecycle points."""

from abc import abstractmethod
from typing import Any, ClassVar, Tuple

from reagent.domain.content import ToolUseBlock
from reagent.domain.hooks import REACT_POINTS, LifecyclePoint
from reagent.domain.messages import Msg
from reagent.engine.agent_base import AgentBase


class ReActAgentBase(AgentBase):
    """
    Base for agents that alternate reasoning and acting.

    Subclasses implement ``_reasoning`` and ``_acting``; the loop calls them
    through the hooked wrappers below.
    """

    supported_hook_points: ClassVar[Tuple[LifecyclePoint, ...]] = REACT_POINTS

    @abstractmethod
    async def _reasoning(self) -> Msg:
        raise NotImplementedError

    @abstractmethod
    async def _acting(self, tool_call: ToolUseBlock) -> Any:
        raise NotImplementedError

    async def _reasoning_with_hooks(self) -> Msg:
        return await self._run_hooked(
            LifecyclePoint.PRE_REASONING,
            LifecyclePoint.POST_REASONING,
            self._reasoning,
            {},
        )

    async def _acting_with_hooks(self, tool_call: ToolUseBlock) -> Any:
        return await self._run_hooked(
            LifecyclePoint.PRE_ACTING,
            LifecyclePoint.POST_ACTING,
            self._acting,
            {"tool_call": tool_call},
        )
