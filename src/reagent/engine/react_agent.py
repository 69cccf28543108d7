"""The ReAct controller: a bounded reasoning/acting loop ended by a completion action."""

import asyncio
import dataclasses
import logging
from typing import Any, AsyncIterator, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from reagent.config import Config, LongTermMemoryMode
from reagent.config_provider import ConfigProvider
from reagent.domain.content import TextBlock, ToolResultBlock, ToolUseBlock
from reagent.domain.exceptions import StructuredOutputError, ToolNotFoundError
from reagent.domain.hooks import LifecyclePoint
from reagent.domain.messages import Msg
from reagent.domain.state import LoopState
from reagent.domain.tool import ToolResponse, error_response, success_response
from reagent.engine.aggregator import ResponseAggregator
from reagent.engine.agent_base import ObservedInput
from reagent.engine.react_agent_base import ReActAgentBase
from reagent.engine.toolkit import Toolkit
from reagent.infra.console_sink import SinkBase
from reagent.infra.formatter import FormatterBase, LangChainFormatter
from reagent.infra.long_term_memory import KeywordLongTermMemory, LongTermMemoryBase
from reagent.infra.memory import InMemoryMemory, MemoryBase
from reagent.llm.chat_model import ChatModelBase
from reagent.llm.langchain_chat_model import build_chat_model

logger = logging.getLogger(__name__)

LONG_TERM_MEMORY_NAME = "long_term_memory"
SUMMARIZE_HINT = (
    "You failed to generate response within the maximum iterations. "
    "Now respond directly by summarizing the current situation."
)
FINISH_DESCRIPTION = (
    "Generate a response. Note only the input argument `response` is visible to "
    "others, you should include all the necessary information in the `response` "
    "argument."
)
FINISH_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "response": {
            "type": "string",
            "description": "Your response to the user.",
        }
    },
    "required": ["response"],
}
META_TOOL_NAME = "reset_equipped_tools"
META_TOOL_PARAMETERS: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "tool_names": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Names of the tools to equip from now on.",
        }
    },
    "required": ["tool_names"],
}


def finish_function_pre_print_hook(
    agent: "ReActAgent", kwargs: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """
    Shows a completion action request as its ``response`` text when printing.

    Args:
        agent: The printing agent.
        kwargs: The print arguments, holding ``msg`` and ``last``.

    Returns:
        Rewritten print arguments, or None when nothing needs rendering.
    """
    msg = kwargs.get("msg")
    if not isinstance(msg, Msg) or isinstance(msg.content, str):
        return None

    blocks: List[Any] = []
    rendered = False
    for block in msg.content:
        if isinstance(block, ToolUseBlock) and block.name == agent.finish_function_name:
            response = block.input.get("response")
            if isinstance(response, str):
                blocks.append(TextBlock(text=response))
                rendered = True
                continue
        blocks.append(block)
    if not rendered:
        return None

    shown = msg.clone()
    shown.set_content(blocks)
    return {**kwargs, "msg": shown}


class ReActAgent(ReActAgentBase):
    """
    Agent that reasons with a chat model and acts through a toolkit until the
    completion action supplies the reply or the iteration bound is reached.

    Args:
        name: Speaker name of the agent.
        sys_prompt: System prompt sent ahead of the conversation log.
        model: Model gateway.
        formatter: Converts messages into the model's input format.
        toolkit: Tool registry; a new one is created when omitted.
        memory: Conversation log; an in-memory log is created when omitted.
        long_term_memory: Optional long-term store.
        long_term_memory_mode: ``agent_control`` exposes record/retrieve tools,
            ``static_control`` retrieves before and records after every reply,
            ``both`` does both.
        enable_meta_tool: Register a tool that lets the model reset its equipped
            tools.
        parallel_tool_calls: Run the actions of one reasoning step concurrently.
        max_iters: Maximum reasoning/acting iterations per reply.
        finish_function_name: Name of the completion action.
        sink: Presentation sink.
    """

    def __init__(
        self,
        name: str,
        sys_prompt: str,
        model: ChatModelBase,
        formatter: FormatterBase,
        toolkit: Optional[Toolkit] = None,
        memory: Optional[MemoryBase] = None,
        long_term_memory: Optional[LongTermMemoryBase] = None,
        long_term_memory_mode: LongTermMemoryMode = "both",
        enable_meta_tool: bool = False,
        parallel_tool_calls: bool = False,
        max_iters: int = 10,
        finish_function_name: str = "generate_response",
        sink: Optional[SinkBase] = None,
    ) -> None:
        super().__init__(name=name, sink=sink)
        if max_iters < 1:
            raise ValueError("max_iters must be at least 1.")
        if long_term_memory_mode not in ("agent_control", "static_control", "both"):
            raise ValueError(
                f"Unsupported long-term memory mode: {long_term_memory_mode}"
            )

        self.sys_prompt = sys_prompt
        self.model = model
        self.formatter = formatter
        self.toolkit = toolkit if toolkit is not None else Toolkit()
        self.memory = memory if memory is not None else InMemoryMemory()
        self.long_term_memory = long_term_memory
        self.long_term_memory_mode = long_term_memory_mode
        self.parallel_tool_calls = parallel_tool_calls
        self.max_iters = max_iters
        self.finish_function_name = finish_function_name

        self._static_control = long_term_memory is not None and long_term_memory_mode in (
            "static_control",
            "both",
        )
        self._agent_control = long_term_memory is not None and long_term_memory_mode in (
            "agent_control",
            "both",
        )
        self._required_structured_model: Optional[Type[BaseModel]] = None
        self._loop_state: Optional[LoopState] = None

        self.toolkit.register_tool_function(
            self.generate_response,
            name=self.finish_function_name,
            description=FINISH_DESCRIPTION,
            parameters=FINISH_PARAMETERS,
        )
        if self._agent_control:
            self.toolkit.register_tool_function(self.long_term_memory.record_to_memory)
            self.toolkit.register_tool_function(
                self.long_term_memory.retrieve_from_memory
            )
        if enable_meta_tool:
            self.toolkit.register_tool_function(
                self.reset_equipped_tools,
                name=META_TOOL_NAME,
                parameters=META_TOOL_PARAMETERS,
            )

        self.register_instance_hook(
            LifecyclePoint.PRE_PRINT,
            "finish_function_pre_print_hook",
            finish_function_pre_print_hook,
        )

    @classmethod
    def from_config(
        cls,
        config: Optional[Config] = None,
        model: Optional[ChatModelBase] = None,
        formatter: Optional[FormatterBase] = None,
        toolkit: Optional[Toolkit] = None,
        memory: Optional[MemoryBase] = None,
        long_term_memory: Optional[LongTermMemoryBase] = None,
        sink: Optional[SinkBase] = None,
    ) -> "ReActAgent":
        """
        Builds an agent from configuration values.

        Args:
            config: Runtime configuration values; loaded through a
                ConfigProvider when omitted.
            model: Model gateway; the OpenAI-backed gateway is built when omitted.
            formatter: Message formatter; LangChain formatting when omitted.
            toolkit: Optional tool registry.
            memory: Optional conversation log.
            long_term_memory: Long-term store; a keyword store when omitted.
            sink: Optional presentation sink.

        Returns:
            The configured agent.
        """
        if config is None:
            config = ConfigProvider().get()
        if model is None:
            model = build_chat_model(config)
        return cls(
            name=config.agent_name,
            sys_prompt=config.get_sys_prompt(),
            model=model,
            formatter=formatter or LangChainFormatter(),
            toolkit=toolkit,
            memory=memory,
            long_term_memory=(
                long_term_memory if long_term_memory is not None else KeywordLongTermMemory()
            ),
            long_term_memory_mode=config.long_term_memory_mode,
            enable_meta_tool=config.enable_meta_tool,
            parallel_tool_calls=config.parallel_tool_calls,
            max_iters=config.max_iters,
            finish_function_name=config.finish_function_name,
            sink=sink,
        )

    @property
    def loop_state(self) -> Optional[LoopState]:
        """Snapshot of the most recent loop, or None before the first reply."""

        if self._loop_state is None:
            return None
        return dataclasses.replace(self._loop_state)

    async def reply(
        self,
        msg: ObservedInput = None,
        structured_model: Optional[Type[BaseModel]] = None,
    ) -> Msg:
        """
        Runs the reasoning/acting loop for one input.

        Args:
            msg: Input message(s) appended to the log before reasoning.
            structured_model: Optional pydantic model the completion action's
                arguments must satisfy.

        Returns:
            The final reply; its metadata holds the structured data when a
            structured model was given.
        """
        await self.memory.add(msg)
        if self._static_control:
            await self._retrieve_from_long_term_memory(msg)

        self._required_structured_model = structured_model
        self.toolkit.set_extended_model(self.finish_function_name, structured_model)

        state = LoopState(max_iters=self.max_iters)
        self._loop_state = state
        while not state.exhausted:
            iteration = state.advance()
            logger.debug("Reasoning iteration", extra=self._log_context(iteration=iteration))

            reasoning_msg = await self._reasoning_with_hooks()
            tool_calls = reasoning_msg.get_tool_calls()
            if not tool_calls:
                # A post-reasoning hook removed every action; its message is the reply.
                state.reply = reasoning_msg
                break

            if self.parallel_tool_calls:
                results = await asyncio.gather(
                    *[self._acting_with_hooks(tool_call) for tool_call in tool_calls]
                )
            else:
                results = []
                for tool_call in tool_calls:
                    results.append(await self._acting_with_hooks(tool_call))

            state.reply = self._first_reply(results, iteration)
            if state.reply is not None:
                break

        if state.reply is None:
            logger.debug("Iteration bound reached; summarizing", extra=self._log_context())
            state.reply = await self._summarizing()

        reply_msg = state.reply
        if self._static_control:
            transcript = await self.memory.get_memory()
            if not reply_msg.sealed:
                transcript.append(reply_msg)
            await self.long_term_memory.record(
                [
                    logged
                    for logged in transcript
                    if logged.name != LONG_TERM_MEMORY_NAME
                ]
            )
        if not reply_msg.sealed:
            await self.memory.add(reply_msg)
        return reply_msg

    def _first_reply(self, results: List[Any], iteration: int) -> Optional[Msg]:
        replies = [result for result in results if isinstance(result, Msg)]
        if not replies:
            return None
        if len(replies) > 1:
            logger.debug(
                "Discarding additional completion results",
                extra=self._log_context(iteration=iteration, discarded=len(replies) - 1),
            )
        logger.debug("Final reply adopted", extra=self._log_context(iteration=iteration))
        return replies[0]

    async def _reasoning(self) -> Msg:
        """
        Asks the model for the next action(s) and logs its message.

        A reply without action requests is turned into one completion request
        carrying the model's text, so every iteration acts at least once.
        """
        prompt = self.formatter.format(
            [Msg.system(self.sys_prompt), *await self.memory.get_memory()]
        )
        response = await self.model(prompt, tools=self.toolkit.get_json_schemas())

        msg = Msg.assistant([], name=self.name)
        await ResponseAggregator(self.print).aggregate(response, msg)

        if not msg.has_content_blocks("tool_use"):
            thinking = msg.get_content_blocks("thinking")
            text = "\n".join(block.text for block in msg.get_content_blocks("text"))
            msg.set_content(
                [
                    *thinking,
                    ToolUseBlock(
                        name=self.finish_function_name, input={"response": text}
                    ),
                ]
            )

        await self.memory.add(msg)
        return msg

    async def _acting(self, tool_call: ToolUseBlock) -> Optional[Msg]:
        """
        Executes one action and logs its result message after the tool finishes.

        Args:
            tool_call: The action request to execute.

        Returns:
            The reply message when the action is a successful completion,
            otherwise None.
        """
        outputs: List[str] = []
        tool_msg = Msg.tool_results(
            [ToolResultBlock(id=tool_call.id, name=tool_call.name, output="")]
        )
        response_msg: Optional[Msg] = None
        printed_last = False

        try:
            async for chunk in self.toolkit.call_tool_function(tool_call):
                text = chunk.get_text_content()
                if text:
                    outputs.append(text)
                tool_msg.set_content(
                    [
                        ToolResultBlock(
                            id=tool_call.id, name=tool_call.name, output="\n".join(outputs)
                        )
                    ]
                )

                completed = (
                    tool_call.name == self.finish_function_name
                    and chunk.is_success()
                    and isinstance(chunk.metadata.get("response_msg"), Msg)
                )
                if completed:
                    response_msg = chunk.metadata["response_msg"]
                else:
                    await self.print(tool_msg, chunk.is_last)
                    printed_last = chunk.is_last

            if response_msg is None and not printed_last:
                await self.print(tool_msg, True)
        finally:
            await self.memory.add(tool_msg)
        return response_msg

    async def _summarizing(self) -> Msg:
        """Asks the model, without tools, to summarize once the loop is exhausted."""

        hint = Msg.user(SUMMARIZE_HINT)
        prompt = self.formatter.format(
            [Msg.system(self.sys_prompt), *await self.memory.get_memory(), hint]
        )
        response = await self.model(prompt)
        msg = Msg.assistant([], name=self.name)
        await ResponseAggregator(self.print).aggregate(response, msg)
        return msg

    async def _observe(self, msg: ObservedInput) -> None:
        await self.memory.add(msg)

    async def handle_interrupt(self) -> Msg:
        reply = await super().handle_interrupt()
        await self.memory.add(reply)
        return reply

    async def generate_response(
        self, response: str, **kwargs: Any
    ) -> AsyncIterator[ToolResponse]:
        """Generate a response to the user."""

        structured_model = self._required_structured_model
        metadata: Dict[str, Any] = {}
        if structured_model is not None:
            try:
                metadata = self._validate_structured_output(
                    structured_model, {"response": response, **kwargs}
                )
            except StructuredOutputError as exc:
                logger.debug(
                    "Structured output rejected",
                    extra=self._log_context(tool_name=self.finish_function_name),
                )
                yield error_response(str(exc))
                return

        reply = Msg.assistant(response, name=self.name)
        reply.metadata.update(metadata)
        yield ToolResponse(
            "Successfully generated response.",
            metadata={"success": True, "response_msg": reply},
        )

    @staticmethod
    def _validate_structured_output(
        structured_model: Type[BaseModel], arguments: Dict[str, Any]
    ) -> Dict[str, Any]:
        try:
            return structured_model.model_validate(arguments).model_dump()
        except ValidationError as exc:
            raise StructuredOutputError(f"Arguments validation error: {exc}") from exc

    async def reset_equipped_tools(
        self, tool_names: List[str]
    ) -> AsyncIterator[ToolResponse]:
        """Replace the equipped tools; the completion action always stays equipped."""

        names = list(dict.fromkeys([*tool_names, self.finish_function_name, META_TOOL_NAME]))
        try:
            self.toolkit.reset_equipped_tools(names)
        except ToolNotFoundError as exc:
            yield error_response(str(exc))
            return
        yield success_response(f"Equipped tools: {', '.join(names)}")

    def update_system_prompt(self, sys_prompt: str) -> None:
        """Replaces the system prompt used from the next reasoning step on."""

        self.sys_prompt = sys_prompt

    async def get_memory_stats(self) -> Dict[str, Any]:
        """
        Summarizes memory usage.

        Returns:
            Message count of the log, long-term statistics when available, and
            the memory mode.
        """
        stats: Dict[str, Any] = {
            "short_term_messages": len(await self.memory.get_memory()),
            "long_term_memory_mode": self.long_term_memory_mode,
        }
        get_stats = getattr(self.long_term_memory, "get_stats", None)
        if callable(get_stats):
            stats["long_term_memory"] = get_stats()
        return stats

    async def clear_memory(self, include_long_term: bool = False) -> None:
        """
        Clears the conversation log and optionally the long-term store.

        Args:
            include_long_term: Also clear the long-term store when it supports it.
        """
        await self.memory.clear()
        if include_long_term and self.long_term_memory is not None:
            clear = getattr(self.long_term_memory, "clear", None)
            if callable(clear):
                await clear()
        logger.debug(
            "Cleared memory",
            extra=self._log_context(include_long_term=include_long_term),
        )

    async def _retrieve_from_long_term_memory(self, msg: ObservedInput) -> None:
        hint = await self.long_term_memory.retrieve(msg)
        if not hint:
            return
        await self.memory.add(
            Msg.user(
                f"<long_term_memory>{hint}</long_term_memory>",
                name=LONG_TERM_MEMORY_NAME,
            )
        )
