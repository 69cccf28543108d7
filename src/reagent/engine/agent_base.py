"""Base agent with hooked reply/observe/print and subscriber broadcast."""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Type, Union

from pydantic import BaseModel

from reagent.domain.hooks import Hookable, LifecyclePoint
from reagent.domain.ids import new_uuid
from reagent.domain.messages import Msg
from reagent.infra.console_sink import ConsoleSink, SinkBase

logger = logging.getLogger(__name__)

INTERRUPT_ACKNOWLEDGEMENT = (
    "I noticed that you have interrupted me. What can I do for you?"
)

ObservedInput = Union[Msg, Sequence[Msg], None]


class AgentBase(Hookable, ABC):
    """
    Common lifecycle of every agent.

    ``reply``, ``observe`` and ``print`` each run between a pre and a post hook
    chain. After a call completes the reply is broadcast to subscribers.

    Args:
        name: Speaker name used on emitted messages.
        sink: Presentation sink; defaults to a rich console sink.
    """

    def __init__(self, name: str, sink: Optional[SinkBase] = None) -> None:
        super().__init__()
        self.id = new_uuid()
        self.name = name
        self.sink = sink or ConsoleSink()
        self._console_enabled = True
        self._interrupted = False
        self._subscribers: Dict[str, List["AgentBase"]] = {}

    @abstractmethod
    async def reply(
        self,
        msg: ObservedInput = None,
        structured_model: Optional[Type[BaseModel]] = None,
    ) -> Msg:
        """Produces the reply to an input message."""
        raise NotImplementedError

    @abstractmethod
    async def _observe(self, msg: ObservedInput) -> None:
        raise NotImplementedError

    async def handle_interrupt(self) -> Msg:
        """
        Builds the acknowledgement returned instead of a reply after interrupt().

        Returns:
            The acknowledgement message.
        """
        reply = Msg.assistant(INTERRUPT_ACKNOWLEDGEMENT, name=self.name)
        await self.print(reply, True)
        return reply

    async def __call__(
        self,
        msg: ObservedInput = None,
        structured_model: Optional[Type[BaseModel]] = None,
    ) -> Msg:
        """
        Replies to a message, running the reply hooks and broadcasting the result.

        Model failures propagate unchanged.

        Args:
            msg: Input message(s), or None to continue from the current log.
            structured_model: Optional pydantic model the final reply must satisfy.

        Returns:
            The reply message.
        """
        if self._interrupted:
            self._interrupted = False
            logger.info(
                "Handling interrupt",
                extra={"agent_id": self.id, "agent_name": self.name},
            )
            reply = await self.handle_interrupt()
        else:
            reply = await self._run_hooked(
                LifecyclePoint.PRE_REPLY,
                LifecyclePoint.POST_REPLY,
                self.reply,
                {"msg": msg, "structured_model": structured_model},
            )
        await self._broadcast_to_subscribers(reply)
        return reply

    async def observe(self, msg: ObservedInput) -> None:
        """Receives message(s) without replying."""

        await self._run_hooked(
            LifecyclePoint.PRE_OBSERVE,
            LifecyclePoint.POST_OBSERVE,
            self._observe,
            {"msg": msg},
        )

    async def print(self, msg: Msg, last: bool = True) -> None:
        """
        Delivers a message state to the presentation sink.

        Args:
            msg: The message in its current state.
            last: Whether this is the final state of the message.
        """
        await self._run_hooked(
            LifecyclePoint.PRE_PRINT,
            LifecyclePoint.POST_PRINT,
            self._print,
            {"msg": msg, "last": last},
        )

    async def _print(self, msg: Msg, last: bool = True) -> None:
        if not self._console_enabled:
            return
        try:
            await self.sink.emit(msg, last)
        except Exception:
            logger.exception(
                "Presentation sink failed",
                extra=self._log_context(msg_id=msg.id, last=last),
            )

    def interrupt(self) -> None:
        """
        Marks the agent so that its next call short-circuits.

        An in-flight call is allowed to finish.
        """
        self._interrupted = True
        logger.debug("Interrupt requested", extra={"agent_id": self.id})

    @property
    def interrupted(self) -> bool:
        """Whether the next call will return the interrupt acknowledgement."""

        return self._interrupted

    def disable_console_output(self) -> None:
        """Stops delivering messages to the sink."""

        self._console_enabled = False

    def enable_console_output(self) -> None:
        """Resumes delivering messages to the sink."""

        self._console_enabled = True

    def reset_subscribers(self, hub_name: str, subscribers: List["AgentBase"]) -> None:
        """
        Replaces the subscribers registered under a hub.

        Args:
            hub_name: Name of the broadcast group.
            subscribers: Agents that observe this agent's replies; the agent
                itself is skipped.
        """
        self._subscribers[hub_name] = [
            agent for agent in subscribers if agent is not self
        ]

    def remove_subscribers(self, hub_name: str) -> None:
        """Removes a hub and its subscribers."""

        if hub_name not in self._subscribers:
            logger.warning(
                "Hub not found when removing subscribers",
                extra={"agent_id": self.id, "hub_name": hub_name},
            )
            return
        del self._subscribers[hub_name]

    @property
    def subscribers(self) -> Dict[str, List["AgentBase"]]:
        """Subscribers keyed by hub name."""

        return {hub: list(agents) for hub, agents in self._subscribers.items()}

    async def _broadcast_to_subscribers(self, msg: Optional[Msg]) -> None:
        if msg is None:
            return
        for hub_name, agents in self._subscribers.items():
            for agent in agents:
                try:
                    await agent.observe(msg)
                except Exception:
                    logger.exception(
                        "Subscriber failed to observe reply",
                        extra={
                            "agent_id": self.id,
                            "hub_name": hub_name,
                            "subscriber": getattr(agent, "name", None),
                        },
                    )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, id={self.id!r})"

    def _log_context(self, **extra: Any) -> Dict[str, Any]:
        context: Dict[str, Any] = {"agent_id": self.id, "agent_name": self.name}
        context.update(extra)
        return context
