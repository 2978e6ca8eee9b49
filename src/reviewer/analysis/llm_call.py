"""Shared LLM call with per-model circuit breaker and rate-limit retry."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import litellm
from circuitbreaker import (  # pyright: ignore[reportUnknownVariableType]
    CircuitBreaker,
    CircuitBreakerError,
)
from litellm.exceptions import RateLimitError as LitellmRateLimitError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from reviewer.constants import (
    CB_LLM_FAILURE_THRESHOLD,
    CB_LLM_RECOVERY_TIMEOUT,
    LLM_MAX_OUTPUT_TOKENS,
    LLM_TEMPERATURE,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_ATTEMPTS,
    RETRY_MAX_WAIT,
)

logger = logging.getLogger(__name__)

# litellm stubs have partially unknown types; typed alias
if TYPE_CHECKING:
    _completion: Callable[..., Any]
else:
    _completion = litellm.completion


@dataclass(frozen=True)
class LLMCallResult:
    """Structured return from guarded_llm_call with token metadata."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int


def _is_non_rate_limit_error(
    thrown_type: type, thrown_value: BaseException
) -> bool:
    """Return True if NOT a rate limit error (should count as CB failure).

    Rate limit errors are backpressure, not provider failure, so they
    are excluded from circuit breaker failure tracking.
    """
    return not issubclass(thrown_type, LitellmRateLimitError)


# Per-model registry so one provider's outage doesn't block
# fallback to another. Workers share it across threads.
_breaker_registry: dict[str, CircuitBreaker] = {}  # pyright: ignore[reportUnknownVariableType]
_registry_lock = threading.Lock()


def _get_breaker(model: str) -> CircuitBreaker:  # pyright: ignore[reportUnknownParameterType]
    """Get or create a circuit breaker for the given model."""
    with _registry_lock:
        if model not in _breaker_registry:
            _breaker_registry[model] = CircuitBreaker(  # pyright: ignore[reportUnknownMemberType]
                failure_threshold=CB_LLM_FAILURE_THRESHOLD,
                recovery_timeout=CB_LLM_RECOVERY_TIMEOUT,
                expected_exception=_is_non_rate_limit_error,
                name=f"llm_{model}",
            )
        return _breaker_registry[model]


@retry(
    stop=stop_after_attempt(RETRY_MAX_ATTEMPTS),
    wait=wait_exponential_jitter(
        initial=RETRY_INITIAL_WAIT, max=RETRY_MAX_WAIT
    ),
    retry=retry_if_exception_type(LitellmRateLimitError),
    reraise=True,
)
def guarded_llm_call(
    model: str,
    messages: list[dict[str, str]],
    timeout: int,
    *,
    api_key: str | None = None,
    api_base: str | None = None,
    json_mode: bool = True,
) -> LLMCallResult:
    """Per-model circuit-breaker-protected completion with rate-limit retry.

    - Each model has its own circuit breaker; it opens after 5
      consecutive non-rate-limit failures and recovers after 30s.
    - Tenacity retries rate-limit errors (429) with jittered
      exponential backoff. Nothing else is retried.
    """
    breaker = _get_breaker(model)
    if breaker.opened:  # pyright: ignore[reportUnknownMemberType]
        raise CircuitBreakerError(breaker)  # pyright: ignore[reportUnknownArgumentType]
    with breaker:  # pyright: ignore[reportUnknownMemberType]
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "timeout": timeout,
            "temperature": LLM_TEMPERATURE,
            "max_tokens": LLM_MAX_OUTPUT_TOKENS,
        }
        if api_key:
            kwargs["api_key"] = api_key
        if api_base:
            kwargs["api_base"] = api_base
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        response: Any = _completion(**kwargs)

    if not response.choices:
        raise ValueError(f"Empty completion from {model}")

    usage: Any = getattr(response, "usage", None)
    return LLMCallResult(
        content=str(response.choices[0].message.content or ""),
        model=model,
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )
