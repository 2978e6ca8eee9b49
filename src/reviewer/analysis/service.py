"""LLM-backed implementation of the AnalysisService protocol."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from circuitbreaker import CircuitBreakerError
from pydantic import ValidationError

from reviewer.analysis.llm_call import guarded_llm_call
from reviewer.analysis.prompts import build_review_messages
from reviewer.config import Settings
from reviewer.constants import estimate_tokens, normalize_level
from reviewer.pipeline.schemas import Review
from reviewer.resilience.errors import (
    ConfigurationError,
    ResponseParseError,
    classify_error,
)

logger = logging.getLogger(__name__)

# ```json ... ``` or ``` ... ```, non-greedy so a trailing fence isn't swallowed
_CODE_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)```\s*$", re.DOTALL)


def parse_review(raw: str) -> Review:
    """Parse a model response into a Review.

    Raises ResponseParseError; the raw response is never part of the
    message since it may echo file content.
    """
    match = _CODE_FENCE.match(raw)
    if match:
        raw = match.group(1)
    raw = raw.strip()
    if not raw:
        raise ResponseParseError("Empty response content")

    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ResponseParseError(
            f"Response is not valid JSON ({exc.msg} at pos {exc.pos})"
        ) from None
    if not isinstance(data, dict):
        raise ResponseParseError(
            f"Expected a JSON object, got {type(data).__name__}"
        )

    try:
        return Review.model_validate(data)
    except ValidationError as exc:
        fields = sorted({str(e["loc"][0]) for e in exc.errors() if e["loc"]})
        raise ResponseParseError(
            f"Response does not match the review schema "
            f"(fields: {', '.join(fields) or 'root'})"
        ) from None


class LLMReviewService:
    """Review files through litellm with model-chain fallback.

    Transport failures and open circuits fall through to the next
    model in the chain; the last failure is re-raised. A response
    that cannot be parsed is raised immediately. Safe to share
    across worker threads: it holds no per-call state.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        models: list[str] | None = None,
    ) -> None:
        if settings is None:
            settings = Settings()
        if not settings.openai_api_key:
            raise ConfigurationError(
                "No API key configured (set OPENAI_API_KEY)"
            )
        self._api_key = settings.openai_api_key
        self._api_base = settings.llm_base_url or None
        self._timeout = settings.llm_timeout_seconds
        self.models = list(models or settings.litellm_model_chain)

    def review(self, path: str, content: str, level: int) -> Review:
        level = normalize_level(level)
        messages = build_review_messages(path, content, level)
        logger.debug(
            "event=review_request path=%s level=%d est_tokens=%d",
            path,
            level,
            estimate_tokens(messages[0]["content"] + messages[1]["content"]),
        )

        last_error: Exception | None = None
        for model in self.models:
            try:
                result = guarded_llm_call(
                    model,
                    messages,
                    self._timeout,
                    api_key=self._api_key,
                    api_base=self._api_base,
                )
            except CircuitBreakerError as exc:
                logger.warning(
                    "event=circuit_open model=%s file=%s", model, path
                )
                last_error = exc
                continue
            except Exception as exc:
                logger.warning(
                    "event=review_call_failed model=%s file=%s error_class=%s",
                    model,
                    path,
                    classify_error(exc).value,
                )
                last_error = exc
                continue

            logger.debug(
                "event=review_response model=%s file=%s in=%d out=%d",
                model,
                path,
                result.input_tokens,
                result.output_tokens,
            )
            return parse_review(result.content)

        if last_error is None:
            raise ConfigurationError("Model chain is empty")
        raise last_error
