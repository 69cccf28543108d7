"""Folds complete or streamed model output into a single message."""

import logging
from typing import Any, AsyncIterator, Awaitable, Callable

from reagent.domain.exceptions import ModelResponseError
from reagent.domain.messages import Msg
from reagent.llm.chat_response import ChatResponse

logger = logging.getLogger(__name__)

Notify = Callable[[Msg, bool], Awaitable[Any]]


class ResponseAggregator:
    """
    Grows one message from model output and reports each state to a notifier.

    Every partial response must carry the fully accumulated content so far, so
    the final message is the same whether the producer emits once or many times.
    The notifier decides what to show; no diffing happens here.

    Args:
        notify: Coroutine called as ``notify(msg, last)`` after each step.
    """

    def __init__(self, notify: Notify) -> None:
        self._notify = notify

    async def aggregate(self, response: Any, msg: Msg) -> Msg:
        """
        Applies the model output to an unsealed message.

        Args:
            response: A ChatResponse or an async iterator of ChatResponse.
            msg: The message being assembled.

        Returns:
            The same message holding the final content.

        Raises:
            ModelResponseError: If the response has an unsupported shape.
        """
        if isinstance(response, ChatResponse):
            msg.set_content(list(response.content))
            await self._notify(msg, True)
            return msg

        if not hasattr(response, "__aiter__"):
            raise ModelResponseError(
                f"Unsupported model output type: {type(response).__name__}"
            )

        finished = await self._consume(response, msg)
        if not finished:
            await self._notify(msg, True)
        return msg

    async def _consume(self, stream: AsyncIterator[ChatResponse], msg: Msg) -> bool:
        finished = False
        chunks = 0
        async for chunk in stream:
            if not isinstance(chunk, ChatResponse):
                raise ModelResponseError(
                    f"Unsupported stream chunk type: {type(chunk).__name__}"
                )
            chunks += 1
            msg.set_content(list(chunk.content))
            finished = chunk.is_last
            await self._notify(msg, chunk.is_last)
        logger.debug("Aggregated streamed response", extra={"chunk_count": chunks})
        return finished
