# llmbridge/llm/llm_base.py
# SPDX-License-Identifier: Apache-2.0
"""
Generation client contract shared by adapters and backends.

Purpose
-------
A small, vendor-neutral surface every backend client implements:

    * generate_content(prompt, params, ctx=...)
    * get_model_name()
    * close()

plus *optional* parameter setters that a backend may or may not expose:

    * set_temperature(float)
    * set_top_p(float)
    * set_top_k(int)
    * set_max_output_tokens(int)  /  set_max_tokens(int)
    * set_frequency_penalty(float)
    * set_presence_penalty(float)

The optional setters are modeled as separate runtime-checkable protocols so
the adapter can probe for them once, at construction time, without requiring
backends to declare anything.

Deliberate Non-Goals
--------------------
- No transport, authentication, retries or token accounting.
- No deadline enforcement: OperationContext is passed through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    List,
    Mapping,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

__all__ = [
    "OperationContext",
    "Safety",
    "ProviderResult",
    "MetricsSink",
    "NoopMetrics",
    "GenerationClient",
    "SupportsTemperature",
    "SupportsTopP",
    "SupportsTopK",
    "SupportsMaxOutputTokens",
    "SupportsMaxTokens",
    "SupportsFrequencyPenalty",
    "SupportsPresencePenalty",
]


# =============================================================================
# Operation Context (tracing, multi-tenant isolation)
# =============================================================================

@dataclass(frozen=True)
class OperationContext:
    """
    Caller context for a generation call.

    All fields are optional and advisory. Adapters pass the context through to
    the backend client; they never interpret deadlines themselves.

    Attributes:
        request_id:
            Correlation ID; copied onto errors that lack an upstream id.
        deadline_ms:
            Absolute epoch ms, for the backend's own timeout handling.
        traceparent:
            W3C traceparent header for distributed tracing.
        tenant:
            Tenant/project identifier; never logged directly.
        attrs:
            Additional JSON-serializable attributes.
    """
    request_id: Optional[str] = None
    deadline_ms: Optional[int] = None
    traceparent: Optional[str] = None
    tenant: Optional[str] = None
    attrs: Mapping[str, Any] = None

    def __post_init__(self) -> None:
        if self.attrs is None:
            object.__setattr__(self, "attrs", {})


# =============================================================================
# Result Models
# =============================================================================

@dataclass
class Safety:
    """One safety rating reported by a backend for a generation."""
    category: str
    blocked: bool = False
    score: float = 0.0


@dataclass
class ProviderResult:
    """
    Normalized generation result returned by backend clients.

    Attributes:
        content:
            Generated text.
        finish_reason:
            Backend finish reason ("STOP", "length", "SAFETY", ...).
        truncated:
            Whether output was cut short by a token limit.
        safety_info:
            Safety ratings, when the backend reports them.
    """
    content: str
    finish_reason: str = ""
    truncated: bool = False
    safety_info: List[Safety] = field(default_factory=list)


# =============================================================================
# Metrics Interface (SIEM-safe, low-cardinality)
# =============================================================================

class MetricsSink(Protocol):
    """
    Metrics collection protocol.

    Implementations MUST avoid PII and high-cardinality labels.
    """
    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None: ...


class NoopMetrics:
    """No-op metrics sink for tests or minimal deployments."""
    def observe(self, **_: Any) -> None: ...


# =============================================================================
# Client Protocols
# =============================================================================

@runtime_checkable
class GenerationClient(Protocol):
    """
    Language-level contract for backend generation clients.

    ``close()`` may be sync or async; callers await the result when it is
    awaitable.
    """

    async def generate_content(
        self,
        prompt: str,
        params: Mapping[str, Any],
        *,
        ctx: Optional[OperationContext] = None,
    ) -> ProviderResult: ...

    def get_model_name(self) -> str: ...

    def close(self) -> Union[None, Awaitable[None]]: ...


@runtime_checkable
class SupportsTemperature(Protocol):
    def set_temperature(self, value: float) -> None: ...


@runtime_checkable
class SupportsTopP(Protocol):
    def set_top_p(self, value: float) -> None: ...


@runtime_checkable
class SupportsTopK(Protocol):
    def set_top_k(self, value: int) -> None: ...


@runtime_checkable
class SupportsMaxOutputTokens(Protocol):
    def set_max_output_tokens(self, value: int) -> None: ...


@runtime_checkable
class SupportsMaxTokens(Protocol):
    """OpenAI-style spelling of the output token limit setter."""
    def set_max_tokens(self, value: int) -> None: ...


@runtime_checkable
class SupportsFrequencyPenalty(Protocol):
    def set_frequency_penalty(self, value: float) -> None: ...


@runtime_checkable
class SupportsPresencePenalty(Protocol):
    def set_presence_penalty(self, value: float) -> None: ...
