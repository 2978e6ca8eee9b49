"""Fixtures for LLM call tests — clean breakers, no retry sleeps."""

from __future__ import annotations

from typing import Any

import pytest
from circuitbreaker import CircuitBreakerMonitor
from tenacity import wait_none

from reviewer.analysis.llm_call import _breaker_registry, guarded_llm_call


@pytest.fixture(autouse=True)
def _reset_breakers() -> None:
    """Reset circuit breakers between tests."""
    _breaker_registry.clear()
    for cb in CircuitBreakerMonitor.get_circuits():
        cb.reset()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def _disable_retry_wait() -> Any:
    """Disable tenacity wait time for fast tests."""
    original_wait = guarded_llm_call.retry.wait  # type: ignore[union-attr]
    guarded_llm_call.retry.wait = wait_none()  # type: ignore[union-attr]
    yield
    guarded_llm_call.retry.wait = original_wait  # type: ignore[union-attr]

