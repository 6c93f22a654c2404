# llmbridge/llm/openai_errors.py
# SPDX-License-Identifier: Apache-2.0
"""
OpenAI SDK exception translation.

Backends built on the official ``openai`` client (OpenAI itself, OpenRouter,
and other OpenAI-compatible gateways) raise the SDK's exception hierarchy.
This module folds those into LLMError so routers and observability never
branch on vendor exception classes.

Requires `openai>=1.0.0` (install the ``openai`` extra).

Example
-------
    try:
        resp = await client.chat.completions.create(...)
    except openai.OpenAIError as e:
        raise translate_openai_error(e, provider="openrouter") from e
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

import openai  # type: ignore

from llmbridge.llm.error_factory import create_error, format_from_response, wrap_generic
from llmbridge.llm.errors import ErrorCategory, LLMError, find_llm_error, safe_str

__all__ = ["translate_openai_error"]


def _envelope(body: Any) -> Optional[Any]:
    """OpenAI keeps the inner error object on ``.body``; re-wrap it."""
    if isinstance(body, Mapping) and "error" not in body:
        return {"error": dict(body)}
    return body


def translate_openai_error(err: BaseException, *, provider: str = "openai") -> LLMError:
    """
    Map OpenAI client errors → LLMError.

    - APITimeoutError     → NETWORK (same as builtin TimeoutError)
    - APIConnectionError  → NETWORK
    - APIStatusError      → classified from status code + error body
    - other OpenAIError   → classified from the message
    """
    if find_llm_error(err) is not None:
        return wrap_generic(err, provider)

    # APITimeoutError subclasses APIConnectionError; check it first.
    if isinstance(err, openai.APITimeoutError):
        return create_error(
            ErrorCategory.NETWORK,
            f"Request to {provider} API timed out",
            err,
            provider=provider,
        )

    if isinstance(err, openai.APIConnectionError):
        return create_error(
            ErrorCategory.NETWORK,
            cause=err,
            details=safe_str(err),
            provider=provider,
        )

    if isinstance(err, openai.APIStatusError):
        status = int(getattr(err, "status_code", 0) or 0)
        return format_from_response(
            err,
            status,
            _envelope(getattr(err, "body", None)),
            provider=provider,
        )

    return wrap_generic(err, provider)
