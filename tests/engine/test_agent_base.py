"""Tests for the base agent lifecycle."""

from typing import List

import pytest

from reagent.domain.hooks import LifecyclePoint
from reagent.domain.messages import Msg
from reagent.engine.agent_base import INTERRUPT_ACKNOWLEDGEMENT, AgentBase


class EchoAgent(AgentBase):
    def __init__(self, name: str, sink) -> None:
        super().__init__(name=name, sink=sink)
        self.observed: List[Msg] = []
        self.replies = 0

    async def reply(self, msg=None, structured_model=None) -> Msg:
        self.replies += 1
        reply = Msg.assistant(f"echo: {msg.get_text_content()}", name=self.name)
        await self.print(reply)
        return reply

    async def _observe(self, msg) -> None:
        self.observed.append(msg)


class BrokenObserver(EchoAgent):
    async def _observe(self, msg) -> None:
        raise RuntimeError("cannot observe")


@pytest.mark.asyncio
async def test_call_runs_reply_hooks(sink) -> None:
    """Reply hooks wrap the reply and may rewrite input and output."""
    agent = EchoAgent("echo", sink)
    agent.register_instance_hook(
        LifecyclePoint.PRE_REPLY,
        "shout",
        lambda a, kwargs: {**kwargs, "msg": Msg.user("HI")},
    )
    agent.register_instance_hook(
        LifecyclePoint.POST_REPLY,
        "tag",
        lambda a, kwargs, output: Msg.assistant(output.get_text_content() + "!", name="echo"),
    )

    reply = await agent(Msg.user("hi"))

    assert reply.get_text_content() == "echo: HI!"


@pytest.mark.asyncio
async def test_print_respects_mute(sink) -> None:
    """Muted agents deliver nothing to the sink."""
    agent = EchoAgent("echo", sink)

    agent.disable_console_output()
    await agent(Msg.user("one"))
    agent.enable_console_output()
    await agent(Msg.user("two"))

    assert sink.texts() == ["echo: two"]


@pytest.mark.asyncio
async def test_reply_is_broadcast_to_subscribers(sink) -> None:
    """Subscribers observe replies; a failing subscriber is skipped."""
    speaker = EchoAgent("speaker", sink)
    listener = EchoAgent("listener", sink)
    broken = BrokenObserver("broken", sink)
    speaker.reset_subscribers("room", [speaker, broken, listener])

    reply = await speaker(Msg.user("hello"))

    assert [msg.id for msg in listener.observed] == [reply.id]
    assert speaker.observed == []
    assert speaker.subscribers == {"room": [broken, listener]}

    speaker.remove_subscribers("room")
    speaker.remove_subscribers("room")
    assert speaker.subscribers == {}


@pytest.mark.asyncio
async def test_interrupt_short_circuits_next_call(sink) -> None:
    """After interrupt() the next call returns the acknowledgement without replying."""
    agent = EchoAgent("echo", sink)

    agent.interrupt()
    acknowledgement = await agent(Msg.user("hello"))
    normal = await agent(Msg.user("again"))

    assert acknowledgement.get_text_content() == INTERRUPT_ACKNOWLEDGEMENT
    assert agent.replies == 1
    assert normal.get_text_content() == "echo: again"
    assert not agent.interrupted


@pytest.mark.asyncio
async def test_observe_runs_observe_hooks(sink) -> None:
    """Observe hooks can rewrite what the agent receives."""
    agent = EchoAgent("echo", sink)
    agent.register_instance_hook(
        LifecyclePoint.PRE_OBSERVE,
        "replace",
        lambda a, kwargs: {"msg": Msg.user("replaced")},
    )

    await agent.observe(Msg.user("original"))

    assert agent.observed[0].get_text_content() == "replaced"
