"""Short-term conversation memory."""

import logging
from abc import ABC, abstractmethod
from typing import List, Sequence, Union

from reagent.domain.messages import Msg

logger = logging.getLogger(__name__)

MsgInput = Union[Msg, Sequence[Msg], None]


class MemoryBase(ABC):
    """
    Append-only conversation log consumed by agents.

    Appending seals each message so its content can no longer be replaced.
    """

    @abstractmethod
    async def add(self, msg: MsgInput) -> None:
        """
        Appends one message or a sequence of messages; None is ignored.

        Args:
            msg: Message(s) to append.
        """
        raise NotImplementedError

    @abstractmethod
    async def get_memory(self) -> List[Msg]:
        """
        Returns the logged messages in append order.

        Returns:
            A copy of the log as a list.
        """
        raise NotImplementedError

    @abstractmethod
    async def clear(self) -> None:
        """Removes every logged message."""
        raise NotImplementedError


class InMemoryMemory(MemoryBase):
    """Memory that keeps the log in a process-local list."""

    def __init__(self) -> None:
        self._messages: List[Msg] = []

    async def add(self, msg: MsgInput) -> None:
        if msg is None:
            return
        messages = [msg] if isinstance(msg, Msg) else list(msg)
        for message in messages:
            if message is None:
                continue
            if not isinstance(message, Msg):
                raise TypeError(f"Expected Msg, got {type(message).__name__}.")
            message.seal()
            self._messages.append(message)
            logger.debug(
                "Logged message",
                extra={"msg_id": message.id, "speaker": message.name, "role": message.role},
            )

    async def get_memory(self) -> List[Msg]:
        return list(self._messages)

    async def clear(self) -> None:
        count = len(self._messages)
        self._messages = []
        logger.debug("Cleared memory", extra={"message_count": count})

    async def get_recent(self, count: int) -> List[Msg]:
        """Returns the last ``count`` messages."""

        if count <= 0:
            return []
        return self._messages[-count:]

    async def delete(self, index: int) -> bool:
        """
        Deletes the message at an index.

        Retention policies use this; agents never delete log entries.

        Args:
            index: Zero-based position in the log.

        Returns:
            True when a message was removed.
        """
        if 0 <= index < len(self._messages):
            removed = self._messages.pop(index)
            logger.debug("Deleted message", extra={"msg_id": removed.id, "index": index})
            return True
        return False

    def size(self) -> int:
        """Returns the number of logged messages."""

        return len(self._messages)
