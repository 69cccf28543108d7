"""Tool descriptors and incremental tool results."""

from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from reagent.domain.content import TextBlock, blocks_text


class _Absent:
    """Placeholder for an optional parameter the caller did not supply."""

    _instance: Optional["_Absent"] = None

    def __new__(cls) -> "_Absent":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Absent":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_Absent":
        return self


ABSENT = _Absent()


class ToolParameter(BaseModel):
    """One entry of a tool's ordered parameter list."""

    name: str
    schema_: Dict[str, Any] = Field(default_factory=lambda: {"type": "string"}, alias="schema")
    required: bool = True

    model_config = ConfigDict(populate_by_name=True)


class ToolDescriptor(BaseModel):
    """Name, description, and ordered parameters of a registered tool."""

    name: str
    description: str = ""
    parameters: List[ToolParameter] = Field(default_factory=list)

    @classmethod
    def from_json_schema(
        cls, name: str, description: str, schema: Dict[str, Any]
    ) -> "ToolDescriptor":
        """Build a descriptor from an object JSON schema.

        Parameter order follows the order of ``schema["properties"]``.

        Args:
            name: Tool name.
            description: Human-readable tool description.
            schema: JSON schema with ``properties`` and optional ``required``.

        Returns:
            The descriptor.
        """

        properties = schema.get("properties") or {}
        required = set(schema.get("required") or [])
        parameters = [
            ToolParameter(name=param, schema=dict(spec), required=param in required)
            for param, spec in properties.items()
        ]
        return cls(name=name, description=description, parameters=parameters)

    @property
    def required_names(self) -> List[str]:
        """Names of required parameters in declaration order."""

        return [param.name for param in self.parameters if param.required]

    def json_schema(self) -> Dict[str, Any]:
        """Return the parameters as an object JSON schema."""

        return {
            "type": "object",
            "properties": {param.name: dict(param.schema_) for param in self.parameters},
            "required": self.required_names,
        }

    def as_openai_tool(self) -> Dict[str, Any]:
        """
        Returns an OpenAI-compatible tool schema definition.

        Returns:
            A dictionary describing the tool for LLM binding.
        """
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.json_schema(),
            },
        }


class ToolResponse(BaseModel):
    """One incremental result produced by a tool."""

    content: List[TextBlock] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    is_last: bool = True

    model_config = ConfigDict(arbitrary_types_allowed=True)

    def __init__(
        self,
        content: Union[str, Iterable[TextBlock], None] = None,
        metadata: Optional[Dict[str, Any]] = None,
        is_last: bool = True,
        **data: Any,
    ) -> None:
        if isinstance(content, str):
            blocks: List[TextBlock] = [TextBlock(text=content)]
        else:
            blocks = list(content or [])
        super().__init__(content=blocks, metadata=metadata or {}, is_last=is_last, **data)

    def get_text_content(self) -> str:
        """Return the text payload of this result."""

        return blocks_text(self.content)

    def is_success(self) -> bool:
        """Whether the result did not report a failure."""

        return self.metadata.get("success") is not False


def success_response(
    content: Union[str, Iterable[TextBlock]], metadata: Optional[Dict[str, Any]] = None
) -> ToolResponse:
    """Build a final, successful tool result."""

    return ToolResponse(content, {**(metadata or {}), "success": True}, True)


def error_response(error: str, metadata: Optional[Dict[str, Any]] = None) -> ToolResponse:
    """Build a final, failed tool result carrying a textual error payload."""

    return ToolResponse(
        f"Error: {error}", {**(metadata or {}), "success": False, "error": error}, True
    )


async def stream_response(
    chunks: List[str], metadata: Optional[Dict[str, Any]] = None
) -> AsyncIterator[ToolResponse]:
    """Yield each chunk as a successful incremental result, the last marked final."""

    for index, chunk in enumerate(chunks):
        yield ToolResponse(
            chunk,
            {**(metadata or {}), "success": True},
            index == len(chunks) - 1,
        )
