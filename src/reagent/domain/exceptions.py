class ReagentError(Exception):
    """Base exception for the reagent runtime."""

    pass


class MessageSealedError(ReagentError):
    """A logged message was mutated."""

    pass


class HookRegistrationError(ReagentError, ValueError):
    """A hook was registered on an unsupported point or removed while absent."""

    pass


class ToolContractError(ReagentError):
    """An action request violated the contract of the requested tool."""

    pass


class ToolNotFoundError(ToolContractError):
    """The requested action is unknown or not equipped."""

    pass


class MissingArgumentError(ToolContractError):
    """A required tool parameter was not supplied."""

    pass


class StructuredOutputError(ReagentError):
    """Completion arguments did not satisfy the structured-output contract."""

    pass


class ModelResponseError(ReagentError):
    """The model gateway returned an unsupported response shape."""

    pass
