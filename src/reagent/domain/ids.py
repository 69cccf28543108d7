from uuid import uuid4


def new_uuid() -> str:
    """Return a full random identifier."""

    return str(uuid4())


def short_uuid() -> str:
    """Return the first segment of a random identifier."""

    return new_uuid().split("-")[0]
