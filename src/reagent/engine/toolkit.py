"""Tool registration, equipping, and invocation for agent loops."""

import inspect
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    AsyncIterator,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Tuple,
    Type,
)

from pydantic import BaseModel

from reagent.domain.content import ToolUseBlock
from reagent.domain.exceptions import (
    MissingArgumentError,
    ToolContractError,
    ToolNotFoundError,
)
from reagent.domain.tool import (
    ABSENT,
    ToolDescriptor,
    ToolParameter,
    ToolResponse,
    error_response,
    success_response,
)

logger = logging.getLogger(__name__)

ToolFunc = Callable[..., Any]

_JSON_TYPES: Dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}
_JSON_TYPES.update({kind.__name__: name for kind, name in list(_JSON_TYPES.items())})


@dataclass
class RegisteredTool:
    """A tool implementation together with its descriptor."""

    descriptor: ToolDescriptor
    func: ToolFunc
    accepts_extra: bool = False
    keyword_only: FrozenSet[str] = field(default_factory=frozenset)
    extended_model: Optional[Type[BaseModel]] = None

    @property
    def name(self) -> str:
        return self.descriptor.name


class Toolkit:
    """
    Registry of tool implementations with an equipped allow-list.

    Registration and equipping are independent: unequipping a tool hides it from the
    model and from invocation without discarding its registration.
    """

    def __init__(self) -> None:
        self._registry: Dict[str, RegisteredTool] = {}
        self._equipped: Dict[str, None] = {}

    def register_tool_function(
        self,
        func: ToolFunc,
        name: Optional[str] = None,
        description: Optional[str] = None,
        parameters: Optional[Dict[str, Any]] = None,
        equip: bool = True,
    ) -> ToolDescriptor:
        """
        Registers a tool implementation.

        When ``parameters`` is omitted the descriptor is derived from the function
        signature; when ``description`` is omitted the first docstring paragraph is
        used.

        Args:
            func: Callable returning a ToolResponse, a string, or an (async)
                iterator of either. Coroutine functions are awaited.
            name: Tool name; defaults to the function name.
            description: Tool description presented to the model.
            parameters: Object JSON schema whose property order fixes the
                positional order of arguments.
            equip: Whether to add the tool to the equipped set.

        Returns:
            The descriptor that was registered.
        """
        tool_name = name or getattr(func, "__name__", None) or "unknown_tool"
        signature = _safe_signature(func)
        if parameters is None:
            descriptor = ToolDescriptor(
                name=tool_name,
                description=description or _describe(func, tool_name),
                parameters=_parameters_from_signature(signature),
            )
        else:
            descriptor = ToolDescriptor.from_json_schema(
                tool_name, description or _describe(func, tool_name), parameters
            )

        accepts_extra = False
        keyword_only: FrozenSet[str] = frozenset()
        if signature is not None:
            accepts_extra = any(
                param.kind is inspect.Parameter.VAR_KEYWORD
                for param in signature.parameters.values()
            )
            keyword_only = frozenset(
                param.name
                for param in signature.parameters.values()
                if param.kind is inspect.Parameter.KEYWORD_ONLY
            )

        previous = self._registry.get(tool_name)
        self._registry[tool_name] = RegisteredTool(
            descriptor=descriptor,
            func=func,
            accepts_extra=accepts_extra,
            keyword_only=keyword_only,
            extended_model=previous.extended_model if previous else None,
        )
        if equip:
            self._equipped[tool_name] = None
        logger.debug("Registered tool", extra={"tool_name": tool_name})
        return descriptor

    def remove_tool_function(self, name: str) -> bool:
        """Removes a tool registration; returns whether it existed."""

        if name not in self._registry:
            return False
        del self._registry[name]
        self._equipped.pop(name, None)
        logger.debug("Removed tool", extra={"tool_name": name})
        return True

    def has_tool_function(self, name: str) -> bool:
        """Returns whether a tool is registered under the name."""

        return name in self._registry

    def get_all_tools(self) -> List[str]:
        """Returns every registered tool name in registration order."""

        return list(self._registry)

    def get_equipped_tools(self) -> List[str]:
        """Returns the equipped tool names in equip order."""

        return list(self._equipped)

    def equip(self, *names: str) -> None:
        """Adds registered tools to the equipped set."""

        self._ensure_registered(names)
        for name in names:
            self._equipped[name] = None

    def unequip(self, *names: str) -> None:
        """Removes tools from the equipped set without unregistering them."""

        for name in names:
            self._equipped.pop(name, None)

    def reset_equipped_tools(self, names: Iterable[str]) -> None:
        """
        Replaces the equipped set.

        Args:
            names: Tool names that should be equipped afterwards.

        Raises:
            ToolNotFoundError: If any name is not registered; the equipped set is
                left unchanged.
        """
        requested = list(names)
        self._ensure_registered(requested)
        self._equipped = dict.fromkeys(requested)
        logger.debug("Reset equipped tools", extra={"tool_names": requested})

    def set_extended_model(
        self, name: str, model: Optional[Type[BaseModel]]
    ) -> None:
        """
        Attaches (or detaches with None) a pydantic model whose fields extend the
        schema presented to the model for a tool.
        """
        tool = self._registry.get(name)
        if tool is None:
            return
        tool.extended_model = model

    def clear(self) -> None:
        """Removes every registration."""

        count = len(self._registry)
        self._registry.clear()
        self._equipped.clear()
        logger.debug("Cleared toolkit", extra={"tool_count": count})

    def get_json_schemas(self) -> List[Dict[str, Any]]:
        """
        Returns OpenAI-style function schemas for the equipped tools.

        Returns:
            A list of tool definitions for LLM binding.
        """
        schemas: List[Dict[str, Any]] = []
        for name in self._equipped:
            tool = self._registry.get(name)
            if tool is None:
                continue
            schema = tool.descriptor.as_openai_tool()
            if tool.extended_model is not None:
                _merge_model_schema(
                    schema["function"]["parameters"], tool.extended_model
                )
            schemas.append(schema)
        return schemas

    async def call_tool_function(
        self, tool_call: ToolUseBlock
    ) -> AsyncIterator[ToolResponse]:
        """
        Invokes the tool named by an action request.

        Resolution, argument, and execution failures are never raised; they are
        turned into a single final result with ``metadata["success"] = False``.

        Args:
            tool_call: The action request emitted by the model.

        Yields:
            Incremental results of the tool in production order.
        """
        log_context = {"tool_name": tool_call.name, "tool_call_id": tool_call.id}
        try:
            tool = self._resolve(tool_call.name)
            args, kwargs = self._map_arguments(tool, tool_call.input)
        except ToolContractError as exc:
            logger.warning("Tool contract violation: %s", exc, extra=log_context)
            yield error_response(str(exc))
            return

        logger.debug("Calling tool", extra=log_context)
        try:
            async for chunk in self._execute(tool, args, kwargs):
                yield chunk
        except Exception as exc:
            logger.exception("Tool execution failed", extra=log_context)
            yield error_response(f"Tool '{tool_call.name}' failed: {exc}")

    def _ensure_registered(self, names: Iterable[str]) -> None:
        missing = [name for name in names if name not in self._registry]
        if missing:
            raise ToolNotFoundError(f"Unknown tools: {', '.join(missing)}")

    def _resolve(self, name: str) -> RegisteredTool:
        if name not in self._equipped:
            raise ToolNotFoundError(f"Tool '{name}' is not equipped or does not exist.")
        tool = self._registry.get(name)
        if tool is None:
            raise ToolNotFoundError(f"Tool '{name}' not found.")
        return tool

    @staticmethod
    def map_arguments(
        descriptor: ToolDescriptor, arguments: Dict[str, Any]
    ) -> Tuple[List[Any], Dict[str, Any]]:
        """
        Converts named arguments into positional ones following the descriptor.

        Args:
            descriptor: Descriptor whose parameter order drives the conversion.
            arguments: Named arguments supplied by the model.

        Returns:
            A tuple of the positional values, with ``ABSENT`` for omitted optional
            parameters, and the arguments the descriptor does not declare.

        Raises:
            ToolContractError: If ``arguments`` is not a mapping.
            MissingArgumentError: If a required parameter is missing.
        """
        if not isinstance(arguments, dict):
            raise ToolContractError(
                f"Arguments for tool '{descriptor.name}' must be an object."
            )
        positional: List[Any] = []
        for param in descriptor.parameters:
            if param.name in arguments:
                positional.append(arguments[param.name])
            elif param.required:
                raise MissingArgumentError(
                    f"Missing required parameter '{param.name}' "
                    f"for tool '{descriptor.name}'."
                )
            else:
                positional.append(ABSENT)
        declared = {param.name for param in descriptor.parameters}
        extras = {key: value for key, value in arguments.items() if key not in declared}
        return positional, extras

    def _map_arguments(
        self, tool: RegisteredTool, arguments: Dict[str, Any]
    ) -> Tuple[List[Any], Dict[str, Any]]:
        positional, extras = self.map_arguments(tool.descriptor, arguments)

        # Absent parameters are omitted so the implementation's default applies;
        # everything after the first omission must be passed by keyword.
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        by_keyword = False
        for param, value in zip(tool.descriptor.parameters, positional):
            if value is ABSENT:
                by_keyword = True
                continue
            if by_keyword or param.name in tool.keyword_only:
                kwargs[param.name] = value
            else:
                args.append(value)

        if extras:
            if tool.accepts_extra:
                kwargs.update(extras)
            else:
                logger.debug(
                    "Ignoring undeclared tool arguments",
                    extra={"tool_name": tool.name, "arguments": sorted(extras)},
                )
        return args, kwargs

    @staticmethod
    async def _execute(
        tool: RegisteredTool, args: List[Any], kwargs: Dict[str, Any]
    ) -> AsyncIterator[ToolResponse]:
        result = tool.func(*args, **kwargs)
        if inspect.isawaitable(result):
            result = await result

        if isinstance(result, (ToolResponse, str)) or result is None:
            yield _as_response(result, final=True)
        elif hasattr(result, "__aiter__"):
            async for chunk in result:
                yield _as_response(chunk, final=False)
        elif inspect.isgenerator(result):
            for chunk in result:
                yield _as_response(chunk, final=False)
        else:
            yield success_response(str(result))


def _as_response(value: Any, final: bool) -> ToolResponse:
    if isinstance(value, ToolResponse):
        return value
    if value is None:
        return success_response("")
    response = success_response(value if isinstance(value, str) else str(value))
    response.is_last = final
    return response


def _safe_signature(func: ToolFunc) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(func)
    except (TypeError, ValueError):
        return None


def _describe(func: ToolFunc, name: str) -> str:
    doc = inspect.getdoc(func)
    if doc:
        return doc.split("\n\n")[0].strip()
    return f"Tool function: {name}"


def _parameters_from_signature(
    signature: Optional[inspect.Signature],
) -> List[ToolParameter]:
    if signature is None:
        return []
    parameters: List[ToolParameter] = []
    for param in signature.parameters.values():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        json_type = _JSON_TYPES.get(param.annotation, "string")
        parameters.append(
            ToolParameter(
                name=param.name,
                schema={"type": json_type},
                required=param.default is inspect.Parameter.empty,
            )
        )
    return parameters


def _merge_model_schema(parameters: Dict[str, Any], model: Type[BaseModel]) -> None:
    extra = model.model_json_schema()
    properties = parameters.setdefault("properties", {})
    for key, value in (extra.get("properties") or {}).items():
        properties.setdefault(key, value)
    required = list(parameters.get("required") or [])
    for key in extra.get("required") or []:
        if key not in required:
            required.append(key)
    parameters["required"] = required
    if "$defs" in extra:
        parameters["$defs"] = extra["$defs"]
