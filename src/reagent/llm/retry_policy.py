from openai import (
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
    RateLimitError,
)
from tenacity import wait_exponential_jitter


def default_retry_exceptions() -> tuple[type[Exception], ...]:
    """Return the default retryable exception set."""

    return (
        RateLimitError,
        InternalServerError,
        APIConnectionError,
        APITimeoutError,
    )


def default_wait_strategy():
    """Return the default tenacity wait strategy."""

    return wait_exponential_jitter(initial=1.0, max=8.0)
