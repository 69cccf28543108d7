"""Presentation sinks that render agent messages."""

import json
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from rich.console import Console

from reagent.domain.content import TextBlock, ThinkingBlock
from reagent.domain.messages import Msg


class SinkBase(ABC):
    """Receives every printed message; ``last`` marks the final state of a message."""

    @abstractmethod
    async def emit(self, msg: Msg, last: bool) -> None:
        """
        Presents a message.

        Args:
            msg: The message in its current (possibly partial) state.
            last: Whether no further updates of this message will follow.
        """
        raise NotImplementedError


class ConsoleSink(SinkBase):
    """
    Renders messages on a rich console.

    Streamed messages arrive repeatedly with their full accumulated content; the
    sink remembers what it has already written per message id and writes only the
    new suffix. Non-text blocks are written as JSON once the message is final.

    Args:
        console: Optional console override.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()
        self._printed: Dict[str, str] = {}

    async def emit(self, msg: Msg, last: bool) -> None:
        blocks = msg.to_blocks()
        lines: List[str] = []
        for block in blocks:
            if isinstance(block, TextBlock):
                lines.append(f"{msg.name}: {block.text}")
            elif isinstance(block, ThinkingBlock):
                lines.append(f"{msg.name}(thinking): {block.thinking}")
        text = "\n".join(lines)

        printed = self._printed.get(msg.id, "")
        if text.startswith(printed):
            self._write(text[len(printed):])
        else:
            # Content was rewritten rather than extended; start a fresh line.
            self._write(self._line_break(printed) + text)
        if text:
            self._printed[msg.id] = text

        if not last:
            return
        printed = self._printed.pop(msg.id, "")
        others = [
            block for block in blocks if not isinstance(block, (TextBlock, ThinkingBlock))
        ]
        self._write(self._line_break(printed))
        for block in others:
            payload = json.dumps(
                block.model_dump(), indent=2, ensure_ascii=False, default=str
            )
            self._write(f"{msg.name}: {payload}\n")

    @staticmethod
    def _line_break(printed: str) -> str:
        return "\n" if printed and not printed.endswith("\n") else ""

    def _write(self, text: str) -> None:
        if text:
            self.console.print(
                text, end="", markup=False, highlight=False, soft_wrap=True
            )
