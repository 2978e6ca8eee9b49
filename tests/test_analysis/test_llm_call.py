"""Tests for the guarded LLM call — circuit breaker and rate-limit retry."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from circuitbreaker import CircuitBreakerError
from litellm.exceptions import RateLimitError as LitellmRateLimitError

from reviewer.analysis.llm_call import (
    _get_breaker,
    guarded_llm_call,
)
from reviewer.constants import LLM_TEMPERATURE

_MESSAGES = [{"role": "user", "content": "hi"}]


def _mock_response(content: str) -> Any:
    msg = type("Msg", (), {"content": content})()
    choice = type("Choice", (), {"message": msg})()
    usage = type(
        "Usage", (), {"prompt_tokens": 100, "completion_tokens": 50}
    )()
    return type("Response", (), {"choices": [choice], "usage": usage})()


def _rate_limit_error() -> LitellmRateLimitError:
    return LitellmRateLimitError(
        message="Rate limit exceeded",
        model="test",
        llm_provider="openai",
    )


class TestGuardedCall:
    def test_returns_content_and_usage(self) -> None:
        mock = MagicMock(return_value=_mock_response('{"score": 1}'))
        with patch("reviewer.analysis.llm_call._completion", new=mock):
            result = guarded_llm_call("test-model", _MESSAGES, 10)
        assert result.content == '{"score": 1}'
        assert result.model == "test-model"
        assert result.input_tokens == 100
        assert result.output_tokens == 50

    def test_request_parameters(self) -> None:
        mock = MagicMock(return_value=_mock_response("{}"))
        with patch("reviewer.analysis.llm_call._completion", new=mock):
            guarded_llm_call(
                "test-model",
                _MESSAGES,
                15,
                api_key="k",
                api_base="https://example.invalid/v1",
            )
        kwargs = mock.call_args.kwargs
        assert kwargs["temperature"] == LLM_TEMPERATURE
        assert kwargs["timeout"] == 15
        assert kwargs["api_key"] == "k"
        assert kwargs["api_base"] == "https://example.invalid/v1"
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_json_mode_off(self) -> None:
        mock = MagicMock(return_value=_mock_response("{}"))
        with patch("reviewer.analysis.llm_call._completion", new=mock):
            guarded_llm_call("test-model", _MESSAGES, 10, json_mode=False)
        assert "response_format" not in mock.call_args.kwargs

    def test_empty_choices_raise(self) -> None:
        empty = type("Response", (), {"choices": [], "usage": None})()
        with (
            patch(
                "reviewer.analysis.llm_call._completion",
                new=MagicMock(return_value=empty),
            ),
            pytest.raises(ValueError, match="Empty completion"),
        ):
            guarded_llm_call("test-model", _MESSAGES, 10)


class TestRateLimitRetry:
    def test_retries_rate_limit_then_succeeds(self) -> None:
        mock = MagicMock(
            side_effect=[
                _rate_limit_error(),
                _rate_limit_error(),
                _mock_response("{}"),
            ]
        )
        with patch("reviewer.analysis.llm_call._completion", new=mock):
            guarded_llm_call("test-model", _MESSAGES, 10)
        assert mock.call_count == 3

    def test_gives_up_after_max_attempts(self) -> None:
        mock = MagicMock(side_effect=_rate_limit_error())
        with (
            patch("reviewer.analysis.llm_call._completion", new=mock),
            pytest.raises(LitellmRateLimitError),
        ):
            guarded_llm_call("test-model", _MESSAGES, 10)
        assert mock.call_count == 3

    def test_other_errors_not_retried(self) -> None:
        mock = MagicMock(side_effect=ConnectionError("API down"))
        with (
            patch("reviewer.analysis.llm_call._completion", new=mock),
            pytest.raises(ConnectionError),
        ):
            guarded_llm_call("test-model", _MESSAGES, 10)
        assert mock.call_count == 1


class TestCircuitBreaker:
    def test_circuit_opens_after_threshold(self) -> None:
        """After 5 failures the 6th call is refused without a request."""
        mock = MagicMock(side_effect=ConnectionError("API down"))
        with patch("reviewer.analysis.llm_call._completion", new=mock):
            for _ in range(5):
                with pytest.raises(ConnectionError):
                    guarded_llm_call("test-model", _MESSAGES, 10)
            with pytest.raises(CircuitBreakerError):
                guarded_llm_call("test-model", _MESSAGES, 10)
        assert mock.call_count == 5

    def test_rate_limits_do_not_open_circuit(self) -> None:
        mock = MagicMock(side_effect=_rate_limit_error())
        with patch("reviewer.analysis.llm_call._completion", new=mock):
            for _ in range(3):
                with pytest.raises(LitellmRateLimitError):
                    guarded_llm_call("test-model", _MESSAGES, 10)
        assert not _get_breaker("test-model").opened

    def test_breakers_are_per_model(self) -> None:
        failing = MagicMock(side_effect=ConnectionError("down"))
        with patch("reviewer.analysis.llm_call._completion", new=failing):
            for _ in range(5):
                with pytest.raises(ConnectionError):
                    guarded_llm_call("model-a", _MESSAGES, 10)
        assert _get_breaker("model-a").opened
        assert not _get_breaker("model-b").opened
