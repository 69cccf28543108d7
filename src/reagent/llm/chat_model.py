from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, List, Optional, Union

from reagent.llm.chat_response import ChatResponse

ModelOutput = Union[ChatResponse, AsyncIterator[ChatResponse]]


class ChatModelBase(ABC):
    """
    Abstract gateway to a language model.

    A call returns either one complete ChatResponse or, when streaming, an async
    iterator of ChatResponse objects where each item carries the full content
    accumulated so far.

    Args:
        model_name: Identifier of the backing model.
        stream: Whether calls return a lazy sequence of partial responses.
    """

    def __init__(self, model_name: str, stream: bool = False) -> None:
        self.model_name = model_name
        self.stream = stream

    @abstractmethod
    async def __call__(
        self,
        messages: List[Any],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> ModelOutput:
        """
        Calls the model.

        Args:
            messages: Backend-specific messages produced by a formatter.
            tools: OpenAI-style function schemas the model may request.

        Returns:
            A complete response or an async iterator of accumulated partial responses.
        """
        raise NotImplementedError
