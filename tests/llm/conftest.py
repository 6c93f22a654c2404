# SPDX-License-Identifier: Apache-2.0
"""
Spy generation clients for adapter tests.

Each client records setter and generation calls so tests can assert exactly
which parameters reached the backend, and in what order.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest

from llmbridge.llm.llm_base import OperationContext, ProviderResult


class MinimalClient:
    """Implements only the required contract; no optional setters."""

    def __init__(self, *, content: str = "ok", error: Optional[BaseException] = None):
        self.content = content
        self.error = error
        self.generate_calls: List[Tuple[str, Dict[str, Any], Optional[OperationContext]]] = []
        self.closed = False

    async def generate_content(
        self,
        prompt: str,
        params: Mapping[str, Any],
        *,
        ctx: Optional[OperationContext] = None,
    ) -> ProviderResult:
        self.generate_calls.append((prompt, dict(params), ctx))
        if self.error is not None:
            raise self.error
        return ProviderResult(content=self.content, finish_reason="STOP")

    def get_model_name(self) -> str:
        return "spy-model"

    def close(self) -> None:
        self.closed = True


class SpyClient(MinimalClient):
    """Exposes every optional setter and records each call."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.setter_calls: List[Tuple[str, Any]] = []

    def set_temperature(self, value: float) -> None:
        self.setter_calls.append(("temperature", value))

    def set_top_p(self, value: float) -> None:
        self.setter_calls.append(("top_p", value))

    def set_top_k(self, value: int) -> None:
        self.setter_calls.append(("top_k", value))

    def set_max_output_tokens(self, value: int) -> None:
        self.setter_calls.append(("max_output_tokens", value))

    def set_frequency_penalty(self, value: float) -> None:
        self.setter_calls.append(("frequency_penalty", value))

    def set_presence_penalty(self, value: float) -> None:
        self.setter_calls.append(("presence_penalty", value))

    def calls_for(self, name: str) -> List[Any]:
        return [v for n, v in self.setter_calls if n == name]


class MaxTokensOnlyClient(MinimalClient):
    """OpenAI-style backend: only the ``set_max_tokens`` spelling."""

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.max_tokens_calls: List[int] = []

    def set_max_tokens(self, value: int) -> None:
        self.max_tokens_calls.append(value)


class AsyncCloseClient(MinimalClient):
    async def close(self) -> None:
        self.closed = True


class HTTPFailure(Exception):
    """Transport error carrying an HTTP status and raw response body."""

    def __init__(self, message: str, status_code: int, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class RecordingMetrics:
    def __init__(self):
        self.observations: List[Dict[str, Any]] = []

    def observe(self, **kwargs: Any) -> None:
        self.observations.append(kwargs)


@pytest.fixture
def spy_client() -> SpyClient:
    return SpyClient()


@pytest.fixture
def minimal_client() -> MinimalClient:
    return MinimalClient()


@pytest.fixture
def max_tokens_client() -> MaxTokensOnlyClient:
    return MaxTokensOnlyClient()


@pytest.fixture
def metrics() -> RecordingMetrics:
    return RecordingMetrics()
