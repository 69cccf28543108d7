"""Keyword-indexed long-term memory."""

import logging
import re
from abc import ABC, abstractmethod
from collections import deque
from typing import AsyncIterator, Deque, Dict, List, Sequence, Union

from reagent.domain.messages import Msg
from reagent.domain.tool import ToolResponse, error_response, success_response

logger = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]", re.UNICODE)
MAX_KEYWORDS = 10
MAX_HITS = 10


class LongTermMemoryBase(ABC):
    """
    Long-term store consulted before and recorded after an agent reply.

    The two tool functions let an agent manage the store itself.
    """

    @abstractmethod
    async def retrieve(self, msg: Union[Msg, Sequence[Msg], None]) -> str:
        """
        Returns a text hint relevant to the message(s), possibly empty.

        Args:
            msg: Context to search for.

        Returns:
            Hint text, or an empty string.
        """
        raise NotImplementedError

    @abstractmethod
    async def record(self, msgs: Sequence[Msg]) -> None:
        """
        Stores messages for later retrieval.

        Args:
            msgs: Messages to record.
        """
        raise NotImplementedError

    async def record_to_memory(self, content: str) -> AsyncIterator[ToolResponse]:
        """Record important information to long-term memory."""

        try:
            await self.record([Msg.user(content)])
        except Exception as exc:
            logger.exception("Long-term memory record failed")
            yield error_response(f"Failed to record to long-term memory: {exc}")
            return
        yield success_response(f"Recorded to long-term memory: {content[:100]}")

    async def retrieve_from_memory(self, query: str) -> AsyncIterator[ToolResponse]:
        """Retrieve information relevant to a query from long-term memory."""

        try:
            result = await self.retrieve(Msg.user(query))
        except Exception as exc:
            logger.exception("Long-term memory retrieval failed")
            yield error_response(f"Failed to retrieve from long-term memory: {exc}")
            return
        yield success_response(
            result or "No relevant information found.", {"found": bool(result)}
        )


class KeywordLongTermMemory(LongTermMemoryBase):
    """
    In-process long-term memory indexing message text by keyword.

    Args:
        max_entries: Maximum entries kept per keyword; oldest entries are dropped.
    """

    def __init__(self, max_entries: int = 1000) -> None:
        self._max_entries = max_entries
        self._storage: Dict[str, Deque[str]] = {}

    async def retrieve(self, msg: Union[Msg, Sequence[Msg], None]) -> str:
        if msg is None:
            return ""
        messages = [msg] if isinstance(msg, Msg) else list(msg)
        query = " ".join(message.get_text_content() for message in messages)
        keywords = extract_keywords(query)

        hits: List[str] = []
        for key, entries in self._storage.items():
            if any(keyword in key for keyword in keywords):
                hits.extend(entries)

        if hits:
            logger.debug("Long-term memory hits", extra={"hit_count": len(hits)})
        return "\n".join(hits[:MAX_HITS])

    async def record(self, msgs: Sequence[Msg]) -> None:
        for msg in msgs:
            content = msg.get_text_content()
            if not content.strip():
                continue
            for keyword in extract_keywords(content):
                entries = self._storage.setdefault(
                    keyword, deque(maxlen=self._max_entries)
                )
                entries.append(content)
        logger.debug("Recorded to long-term memory", extra={"message_count": len(msgs)})

    async def clear(self) -> None:
        """Removes every entry."""

        self._storage.clear()

    def get_stats(self) -> Dict[str, int]:
        """Returns the number of keywords and total entries."""

        return {
            "keywords": len(self._storage),
            "total_entries": sum(len(entries) for entries in self._storage.values()),
        }


def extract_keywords(text: str) -> List[str]:
    """
    Extracts up to ten distinct lower-cased words longer than two characters.

    Args:
        text: Source text.

    Returns:
        Keywords in first-seen order.
    """
    words = _NON_WORD.sub(" ", text.lower()).split()
    unique = dict.fromkeys(word for word in words if len(word) > 2)
    return list(unique)[:MAX_KEYWORDS]
