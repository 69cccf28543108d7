"""Tests for the in-memory conversation log."""

import pytest

from reagent.domain.exceptions import MessageSealedError
from reagent.domain.messages import Msg
from reagent.infra.memory import InMemoryMemory


@pytest.mark.asyncio
async def test_add_appends_in_order_and_seals() -> None:
    """Messages are appended in order and become immutable."""
    memory = InMemoryMemory()
    first = Msg.user("a")
    second = Msg.user("b")

    await memory.add(first)
    await memory.add([second, None])
    await memory.add(None)

    assert await memory.get_memory() == [first, second]
    assert memory.size() == 2
    assert (await memory.get_recent(1)) == [second]
    with pytest.raises(MessageSealedError):
        first.set_content("changed")


@pytest.mark.asyncio
async def test_add_rejects_non_messages() -> None:
    """Only messages can be logged."""
    memory = InMemoryMemory()

    with pytest.raises(TypeError):
        await memory.add(["not a message"])


@pytest.mark.asyncio
async def test_recent_delete_and_clear() -> None:
    """Retention helpers operate on positions in the log."""
    memory = InMemoryMemory()
    await memory.add([Msg.user(str(index)) for index in range(4)])

    recent = await memory.get_recent(2)
    assert [msg.get_text_content() for msg in recent] == ["2", "3"]
    assert await memory.get_recent(0) == []

    assert await memory.delete(0) is True
    assert await memory.delete(10) is False
    assert memory.size() == 3

    await memory.clear()
    assert await memory.get_memory() == []
    assert memory.size() == 0


@pytest.mark.asyncio
async def test_get_memory_returns_a_copy() -> None:
    """Mutating the returned list does not change the log."""
    memory = InMemoryMemory()
    await memory.add(Msg.user("a"))

    snapshot = await memory.get_memory()
    snapshot.clear()

    assert memory.size() == 1
