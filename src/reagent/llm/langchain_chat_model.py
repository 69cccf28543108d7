"""Model gateway backed by a LangChain chat model."""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_openai import ChatOpenAI
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from reagent.config import Config
from reagent.domain.content import TextBlock, ThinkingBlock, ToolUseBlock
from reagent.domain.ids import short_uuid
from reagent.llm.chat_model import ChatModelBase, ModelOutput
from reagent.llm.chat_response import ChatResponse
from reagent.llm.retry_policy import default_retry_exceptions, default_wait_strategy

logger = logging.getLogger(__name__)


class LangChainChatModel(ChatModelBase):
    """
    Adapts a LangChain chat model to the gateway contract.

    Complete calls may be retried on transient provider errors; when attempts are
    exhausted the last provider exception is re-raised unchanged. Streaming calls
    are never retried because partial output has already been delivered.

    Args:
        llm: LangChain chat model used for completions.
        stream: Whether to stream partial responses.
        max_attempts: Maximum attempts for complete calls, including the first.
        retry_exceptions: Exception types eligible for retry.
        wait_strategy: Tenacity wait strategy between attempts.
        model_name: Optional override of the reported model name.
    """

    def __init__(
        self,
        llm: BaseChatModel,
        stream: bool = False,
        max_attempts: int = 1,
        retry_exceptions: Optional[Tuple[type[Exception], ...]] = None,
        wait_strategy: Optional[Any] = None,
        model_name: Optional[str] = None,
    ) -> None:
        super().__init__(
            model_name=model_name or getattr(llm, "model_name", None) or type(llm).__name__,
            stream=stream,
        )
        self.llm = llm
        self._max_attempts = max(1, max_attempts)
        self._retry_exceptions = (
            retry_exceptions if retry_exceptions is not None else default_retry_exceptions()
        )
        self._wait_strategy = wait_strategy or wait_fixed(0)

    async def __call__(
        self,
        messages: List[BaseMessage],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ModelOutput:
        runnable = self.llm.bind_tools(tools) if tools else self.llm
        logger.debug(
            "LLM request start",
            extra={
                "model": self.model_name,
                "message_count": len(messages),
                "tool_count": len(tools or []),
                "stream": self.stream,
            },
        )
        if self.stream:
            return self._stream(runnable, messages)
        message = await self._invoke(runnable, messages)
        return ChatResponse(
            content=message_to_blocks(message),
            usage=getattr(message, "usage_metadata", None) or None,
        )

    async def _invoke(self, runnable: Any, messages: List[BaseMessage]) -> AIMessage:
        if self._max_attempts == 1 or not self._retry_exceptions:
            return await runnable.ainvoke(messages)

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            retry=retry_if_exception_type(self._retry_exceptions),
            wait=self._wait_strategy,
            reraise=True,
        ):
            with attempt:
                return await runnable.ainvoke(messages)
        raise RuntimeError("Retry loop exited without a result.")  # pragma: no cover

    async def _stream(
        self, runnable: Any, messages: List[BaseMessage]
    ) -> AsyncIterator[ChatResponse]:
        accumulated: Optional[AIMessageChunk] = None
        response_id = short_uuid()
        async for chunk in runnable.astream(messages):
            accumulated = chunk if accumulated is None else accumulated + chunk
            yield ChatResponse(
                id=response_id,
                content=message_to_blocks(accumulated),
                is_last=False,
                usage=getattr(accumulated, "usage_metadata", None) or None,
            )
        if accumulated is not None:
            yield ChatResponse(
                id=response_id,
                content=message_to_blocks(accumulated),
                is_last=True,
                usage=getattr(accumulated, "usage_metadata", None) or None,
            )


def message_to_blocks(message: AIMessage) -> List[Any]:
    """
    Converts a LangChain AI message into content blocks.

    Args:
        message: A complete or accumulated AI message.

    Returns:
        Thinking, text, and tool-use blocks in that order.
    """
    blocks: List[Any] = []
    reasoning = (message.additional_kwargs or {}).get("reasoning_content")
    if reasoning:
        blocks.append(ThinkingBlock(thinking=str(reasoning)))

    content = message.content
    if isinstance(content, str):
        if content:
            blocks.append(TextBlock(text=content))
    else:
        for part in content:
            if isinstance(part, str):
                blocks.append(TextBlock(text=part))
            elif part.get("type") == "text":
                blocks.append(TextBlock(text=part.get("text", "")))
            elif part.get("type") == "thinking":
                blocks.append(ThinkingBlock(thinking=part.get("thinking", "")))

    for tool_call in message.tool_calls or []:
        if not tool_call.get("name"):
            continue
        blocks.append(
            ToolUseBlock(
                id=tool_call.get("id") or short_uuid(),
                name=tool_call["name"],
                input=dict(tool_call.get("args") or {}),
            )
        )
    return blocks


def build_chat_model(config: Config) -> LangChainChatModel:
    """
    Builds the default OpenAI-backed gateway from configuration.

    Args:
        config: Runtime configuration values.

    Returns:
        A LangChainChatModel wrapping ChatOpenAI.
    """
    llm_kwargs: Dict[str, Any] = {
        "model": config.get_model_name(),
        "temperature": config.temperature,
    }
    api_key = config.get_openai_api_key()
    if api_key is not None:
        llm_kwargs["api_key"] = api_key
    if config.api_base:
        llm_kwargs["base_url"] = config.api_base
    llm = ChatOpenAI(**llm_kwargs)
    return LangChainChatModel(
        llm,
        stream=config.stream,
        max_attempts=config.model_max_attempts,
        wait_strategy=default_wait_strategy(),
        model_name=config.get_model_name(),
    )
