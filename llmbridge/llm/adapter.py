# llmbridge/llm/adapter.py
# SPDX-License-Identifier: Apache-2.0
"""
Capability-probing client adapter.

Wraps any `GenerationClient` and makes backend differences in parameter
support invisible to callers:

    adapter = ClientAdapter(gemini_client, provider="gemini")
    result = await adapter.generate_content(
        "Summarize this diff",
        {"temperature": 0.2, "top_k": 40, "max_tokens": 1024},
    )

Per call the adapter:
    1. rejects an empty prompt,
    2. replaces its stored parameter bag when a non-empty override is given,
    3. validates the bag (range errors are terminal for the call),
    4. applies each parameter the backend has a setter for,
    5. delegates generation and normalizes any failure into an LLMError.

Capabilities are probed once, at construction, against the optional setter
protocols in `llm_base`. A parameter the backend cannot take is skipped
silently.

Concurrency
-----------
Steps 2-4 run under a `threading.Lock` and contain no await points, so they
are atomic with respect to both threads and coroutines. The lock is released
before the delegate call. Backends that are not safe for concurrent use can
set ``serialize_generation=True`` (or LLMBRIDGE_SERIALIZE_GENERATION=1) to
hold a second `threading.Lock` across the whole call. It is acquired in a
worker thread, so callers on different threads and event loops share it
without blocking their loops.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Type

from llmbridge.llm.error_factory import create_error, format_from_response, wrap_generic
from llmbridge.llm.errors import DEFAULT_PROVIDER, ErrorCategory, LLMError, find_llm_error
from llmbridge.llm.llm_base import (
    GenerationClient,
    MetricsSink,
    NoopMetrics,
    OperationContext,
    ProviderResult,
    SupportsFrequencyPenalty,
    SupportsMaxOutputTokens,
    SupportsMaxTokens,
    SupportsPresencePenalty,
    SupportsTemperature,
    SupportsTopK,
    SupportsTopP,
)
from llmbridge.llm.params import ParamKind, first_present, validate_parameters

LOG = logging.getLogger(__name__)

__all__ = [
    "SetterSpec",
    "SETTER_SPECS",
    "ClientCapabilities",
    "detect_capabilities",
    "ClientAdapter",
]


def _env_flag(name: str, default: str = "0") -> bool:
    """
    Parse a boolean-ish environment variable.

    Truthy values: "1", "true", "yes", "on" (any case, surrounding whitespace allowed).
    """
    val = os.getenv(name, default)
    if not isinstance(val, str):
        return False
    return val.strip().lower() in {"1", "true", "yes", "on"}


_SERIALIZE_GENERATION_DEFAULT: bool = _env_flag("LLMBRIDGE_SERIALIZE_GENERATION", "0")


# =============================================================================
# Capability probing
# =============================================================================

@dataclass(frozen=True)
class SetterSpec:
    """
    How one logical parameter reaches a backend.

    Attributes:
        parameter:
            Logical parameter name.
        names:
            Bag keys tried in order: generic name first, aliases after.
        kind:
            Coercion kind for the value.
        probes:
            (protocol, method) pairs tried in order against the client.
    """
    parameter: str
    names: Tuple[str, ...]
    kind: ParamKind
    probes: Tuple[Tuple[Type[Any], str], ...]


SETTER_SPECS: Tuple[SetterSpec, ...] = (
    SetterSpec("temperature", ("temperature",), ParamKind.FLOAT,
               ((SupportsTemperature, "set_temperature"),)),
    SetterSpec("top_p", ("top_p",), ParamKind.FLOAT,
               ((SupportsTopP, "set_top_p"),)),
    SetterSpec("top_k", ("top_k",), ParamKind.INT,
               ((SupportsTopK, "set_top_k"),)),
    SetterSpec("max_output_tokens", ("max_output_tokens", "max_tokens"), ParamKind.INT,
               ((SupportsMaxOutputTokens, "set_max_output_tokens"),
                (SupportsMaxTokens, "set_max_tokens"))),
    SetterSpec("frequency_penalty", ("frequency_penalty",), ParamKind.FLOAT,
               ((SupportsFrequencyPenalty, "set_frequency_penalty"),)),
    SetterSpec("presence_penalty", ("presence_penalty",), ParamKind.FLOAT,
               ((SupportsPresencePenalty, "set_presence_penalty"),)),
)


@dataclass(frozen=True)
class ClientCapabilities:
    """
    Optional setters discovered on a client, keyed by logical parameter.

    Built once per adapter; never re-probed.
    """
    setters: Mapping[str, Callable[[Any], Any]] = field(default_factory=dict)

    def supports(self, parameter: str) -> bool:
        return parameter in self.setters

    def setter(self, parameter: str) -> Optional[Callable[[Any], Any]]:
        return self.setters.get(parameter)

    @property
    def parameters(self) -> Tuple[str, ...]:
        return tuple(spec.parameter for spec in SETTER_SPECS if spec.parameter in self.setters)


def detect_capabilities(client: Any) -> ClientCapabilities:
    setters: Dict[str, Callable[[Any], Any]] = {}
    for spec in SETTER_SPECS:
        for protocol, method in spec.probes:
            if not isinstance(client, protocol):
                continue
            bound = getattr(client, method, None)
            if callable(bound):
                setters[spec.parameter] = bound
                break
    return ClientCapabilities(setters=MappingProxyType(setters))


def _release_when_acquired(lock: threading.Lock) -> Callable[["asyncio.Future[Any]"], None]:
    def release(fut: "asyncio.Future[Any]") -> None:
        if not fut.cancelled() and fut.exception() is None:
            lock.release()
    return release


def _is_openai_error(err: BaseException) -> bool:
    # Only true when the openai package raised it, so the import is safe.
    return type(err).__module__.split(".", 1)[0] == "openai"


# =============================================================================
# Adapter
# =============================================================================

class ClientAdapter:
    """
    GenerationClient wrapper that validates, coerces and applies parameters.

    The adapter itself satisfies `GenerationClient`, so it can be used anywhere
    a plain client is expected.
    """

    _component = "llm"

    def __init__(
        self,
        client: GenerationClient,
        *,
        provider: str = DEFAULT_PROVIDER,
        parameters: Optional[Mapping[str, Any]] = None,
        metrics: Optional[MetricsSink] = None,
        serialize_generation: Optional[bool] = None,
    ) -> None:
        """
        Args:
            client:
                Backend client. Referenced, not owned; only ``close()`` is
                forwarded.
            provider:
                Provider identity stamped on every error this adapter raises.
            parameters:
                Initial parameter bag.
            metrics:
                Metrics sink; defaults to NoopMetrics.
            serialize_generation:
                Hold a lock across the delegate call. Defaults to the
                LLMBRIDGE_SERIALIZE_GENERATION environment flag.
        """
        if client is None:
            raise ValueError("ClientAdapter requires a client")
        self._client = client
        self._provider = (provider or DEFAULT_PROVIDER).strip() or DEFAULT_PROVIDER
        self._params: Dict[str, Any] = dict(parameters or {})
        self._metrics: MetricsSink = metrics or NoopMetrics()
        if serialize_generation is None:
            serialize_generation = _SERIALIZE_GENERATION_DEFAULT
        self._serialize_generation = bool(serialize_generation)
        self._state_lock = threading.Lock()
        self._call_lock = threading.Lock()
        self._capabilities = detect_capabilities(client)
        LOG.debug(
            "%s adapter capabilities: %s",
            self._provider,
            ", ".join(self._capabilities.parameters) or "none",
        )

    # --- async context management -------------------------------------------

    async def __aenter__(self) -> "ClientAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # --- accessors ------------------------------------------------------------

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def client(self) -> GenerationClient:
        return self._client

    def capabilities(self) -> ClientCapabilities:
        return self._capabilities

    def supported_parameters(self) -> Tuple[str, ...]:
        return self._capabilities.parameters

    def parameters(self) -> Dict[str, Any]:
        """Copy of the stored parameter bag."""
        with self._state_lock:
            return dict(self._params)

    def set_parameters(self, parameters: Optional[Mapping[str, Any]]) -> None:
        """Replace the stored parameter bag wholesale."""
        with self._state_lock:
            self._params = dict(parameters or {})

    # --- delegation -------------------------------------------------------------

    def get_model_name(self) -> str:
        return self._client.get_model_name()

    async def close(self) -> None:
        result = self._client.close()
        if inspect.isawaitable(result):
            await result

    async def generate_content(
        self,
        prompt: str,
        params: Optional[Mapping[str, Any]] = None,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> ProviderResult:
        """
        Validate and apply parameters, then delegate to the wrapped client.

        Raises:
            LLMError: INVALID_REQUEST for an empty prompt or out-of-range
                parameters; any delegate failure, normalized.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise create_error(
                ErrorCategory.INVALID_REQUEST,
                "prompt cannot be empty",
                provider=self._provider,
                request_id=(ctx.request_id or "") if ctx else "",
            )

        t0 = time.monotonic()
        try:
            if self._serialize_generation:
                async with self._serialized():
                    result = await self._generate(prompt, params, ctx)
            else:
                result = await self._generate(prompt, params, ctx)
        except LLMError as e:
            self._record(t0, False, code=e.category.value)
            raise
        self._record(t0, True)
        return result

    # --- internals ----------------------------------------------------------------

    @contextlib.asynccontextmanager
    async def _serialized(self):
        """Hold the call lock for the duration of one generation."""
        lock = self._call_lock
        if not lock.acquire(blocking=False):
            pending = asyncio.ensure_future(asyncio.to_thread(lock.acquire))
            try:
                await asyncio.shield(pending)
            except asyncio.CancelledError:
                # The worker still takes the lock; give it straight back.
                pending.add_done_callback(_release_when_acquired(lock))
                raise
        try:
            yield
        finally:
            lock.release()

    async def _generate(
        self,
        prompt: str,
        params: Optional[Mapping[str, Any]],
        ctx: Optional[OperationContext],
    ) -> ProviderResult:
        snapshot = self._prepare(params)
        try:
            return await self._client.generate_content(prompt, snapshot, ctx=ctx)
        except Exception as e:
            wrapped = self._normalize(e, ctx)
            LOG.warning(
                "%s generation failed [%s]: %s",
                self._provider,
                wrapped.category.value,
                wrapped.message,
            )
            LOG.debug("%s", wrapped.debug_info())
            if wrapped is find_llm_error(e):
                # Already structured; its cause chain is left as is.
                raise wrapped
            raise wrapped from e

    def _prepare(self, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        """Replace, validate and apply the bag atomically; return a snapshot."""
        with self._state_lock:
            if params:
                self._params = dict(params)
            bag = self._params
            try:
                validate_parameters(bag, provider=self._provider)
            except LLMError as e:
                LOG.debug("%s rejected parameters: %s", self._provider, e.message)
                raise
            self._apply_parameters(bag)
            return dict(bag)

    def _apply_parameters(self, bag: Mapping[str, Any]) -> None:
        for spec in SETTER_SPECS:
            name, value, ok = first_present(bag, spec.names, spec.kind)
            if not ok:
                continue
            setter = self._capabilities.setter(spec.parameter)
            if setter is None:
                LOG.debug(
                    "%s client does not support %s; skipping", self._provider, spec.parameter
                )
                continue
            try:
                setter(value)
            except Exception as e:
                wrapped = wrap_generic(e, self._provider)
                if wrapped is find_llm_error(e):
                    raise wrapped
                raise wrapped from e
            LOG.debug("%s applied %s=%r (from %s)", self._provider, spec.parameter, value, name)

    def _normalize(self, err: Exception, ctx: Optional[OperationContext]) -> LLMError:
        if find_llm_error(err) is not None:
            return wrap_generic(err, self._provider)

        if _is_openai_error(err):
            from llmbridge.llm.openai_errors import translate_openai_error

            wrapped = translate_openai_error(err, provider=self._provider)
        else:
            status_code = getattr(err, "status_code", 0)
            if not isinstance(status_code, int) or isinstance(status_code, bool):
                status_code = 0
            body = getattr(err, "body", None)
            if status_code or body is not None:
                wrapped = format_from_response(err, status_code, body, provider=self._provider)
            else:
                wrapped = wrap_generic(err, self._provider)

        if ctx is not None and ctx.request_id and not wrapped.request_id:
            wrapped.request_id = ctx.request_id
        return wrapped

    def _record(self, t0: float, ok: bool, *, code: str = "OK") -> None:
        """Emit a timing metric; failures in the sink are swallowed."""
        try:
            self._metrics.observe(
                component=self._component,
                op="generate_content",
                ms=(time.monotonic() - t0) * 1000.0,
                ok=ok,
                code=code,
                extra={"provider": self._provider},
            )
        except Exception:
            pass
