# llmbridge/llm/error_factory.py
# SPDX-License-Identifier: Apache-2.0
"""
Builders that turn raw failures into populated LLMError values.

- create_error():          category (+ optional message) → LLMError with
                           canned message/suggestion filled in.
- format_from_response():  raw error + HTTP status + vendor JSON error body
                           → LLMError with parsed details.
- wrap_generic():          raw error with no HTTP context → LLMError,
                           classified from the error itself.

Canned text lives in read-only tables. Provider-specific suggestions win over
the generic ones where a backend has more precise remediation advice.
"""

from __future__ import annotations

import json
import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from llmbridge.llm.classification import (
    category_from_vendor_status,
    classify,
    is_safety_filter,
)
from llmbridge.llm.errors import (
    DEFAULT_PROVIDER,
    ErrorCategory,
    LLMError,
    find_llm_error,
    safe_str,
)

LOG = logging.getLogger(__name__)

__all__ = [
    "CATEGORY_MESSAGES",
    "CATEGORY_SUGGESTIONS",
    "PROVIDER_SUGGESTIONS",
    "standard_message",
    "suggestion_for",
    "create_error",
    "parse_error_response",
    "format_error_details",
    "format_from_response",
    "wrap_generic",
]

ResponseBody = Union[bytes, bytearray, str, Mapping[str, Any], None]

# "{provider}" is substituted at build time.
CATEGORY_MESSAGES: Mapping[ErrorCategory, str] = MappingProxyType({
    ErrorCategory.AUTH: "Authentication failed with the {provider} API",
    ErrorCategory.RATE_LIMIT: "Request rate limit exceeded on the {provider} API",
    ErrorCategory.INSUFFICIENT_CREDITS: "Insufficient credits or payment required on the {provider} API",
    ErrorCategory.INVALID_REQUEST: "Invalid request sent to the {provider} API",
    ErrorCategory.NOT_FOUND: "The requested model or resource was not found on the {provider} API",
    ErrorCategory.SERVER: "{provider} API server error occurred",
    ErrorCategory.NETWORK: "Network error while connecting to the {provider} API",
    ErrorCategory.CANCELLED: "Request to {provider} API was cancelled",
    ErrorCategory.INPUT_LIMIT: "Input token limit exceeded for the selected {provider} model",
    ErrorCategory.CONTENT_FILTERED: "Content was filtered by {provider} safety settings",
    ErrorCategory.UNKNOWN: "Error calling {provider} API",
})

CATEGORY_SUGGESTIONS: Mapping[ErrorCategory, str] = MappingProxyType({
    ErrorCategory.AUTH: (
        "Check that your API key is valid and has not expired. "
        "Ensure the provider's API key environment variable is set correctly."
    ),
    ErrorCategory.RATE_LIMIT: (
        "Wait and try again later. Consider reducing request concurrency or rate."
    ),
    ErrorCategory.INSUFFICIENT_CREDITS: (
        "Check your account balance and billing status with the provider, "
        "and add credits if needed."
    ),
    ErrorCategory.INVALID_REQUEST: (
        "Check the prompt format and parameters. Ensure they comply with the API requirements."
    ),
    ErrorCategory.NOT_FOUND: (
        "Verify that the model name is correct and that you have access to it."
    ),
    ErrorCategory.SERVER: (
        "This is typically a temporary issue with the provider's servers. "
        "Wait a few moments and try again."
    ),
    ErrorCategory.NETWORK: (
        "Check your internet connection and try again. "
        "If the problem persists, the provider may be unreachable."
    ),
    ErrorCategory.CANCELLED: (
        "The operation was interrupted. Try again with a longer timeout if needed."
    ),
    ErrorCategory.INPUT_LIMIT: (
        "Your input is too long for the model's context window. "
        "Reduce the input size or use a model with a larger context window."
    ),
    ErrorCategory.CONTENT_FILTERED: (
        "Your prompt or content may have triggered safety filters. "
        "Review and modify your input to comply with content policies."
    ),
    ErrorCategory.UNKNOWN: "Check the logs for more details or try again.",
})

PROVIDER_SUGGESTIONS: Mapping[str, Mapping[ErrorCategory, str]] = MappingProxyType({
    "gemini": MappingProxyType({
        ErrorCategory.AUTH: (
            "Check that your Google API key is valid and has not expired. "
            "Ensure GOOGLE_API_KEY environment variable is set correctly."
        ),
        ErrorCategory.RATE_LIMIT: (
            "Wait and try again later. Google has rate limits for the Gemini API "
            "based on your account tier."
        ),
        ErrorCategory.INSUFFICIENT_CREDITS: (
            "Check your Google Cloud billing account and ensure it's active. "
            "Visit https://console.cloud.google.com/billing for account details."
        ),
        ErrorCategory.NOT_FOUND: (
            "Verify that the model ID is correct and that Gemini API is available in your region."
        ),
        ErrorCategory.SERVER: (
            "This is typically a temporary issue with Google's servers. "
            "Wait a few moments and try again."
        ),
        ErrorCategory.INPUT_LIMIT: (
            "Your input is too long for the model's context window. "
            "Reduce the input size to fit within Gemini's token limits."
        ),
        ErrorCategory.CONTENT_FILTERED: (
            "Your prompt or request was flagged by Gemini's content filters. "
            "Modify your prompt to comply with Google's content policy."
        ),
    }),
    "openai": MappingProxyType({
        ErrorCategory.AUTH: (
            "Check that your OpenAI API key is valid and has not expired. "
            "Ensure OPENAI_API_KEY environment variable is set correctly."
        ),
        ErrorCategory.INSUFFICIENT_CREDITS: (
            "Check your OpenAI account balance and add credits if needed. "
            "Visit https://platform.openai.com/account/billing for account details."
        ),
        ErrorCategory.NOT_FOUND: (
            "Verify that the model ID is correct and that you have access to the requested model."
        ),
        ErrorCategory.SERVER: (
            "This is typically a temporary issue with OpenAI's servers. "
            "Wait a few moments and try again."
        ),
        ErrorCategory.CONTENT_FILTERED: (
            "Your prompt or request was flagged by OpenAI's content filters. "
            "Modify your prompt to comply with OpenAI's usage policies."
        ),
    }),
    "openrouter": MappingProxyType({
        ErrorCategory.AUTH: (
            "Check that your OpenRouter API key is valid and has not expired. "
            "Ensure OPENROUTER_API_KEY environment variable is set correctly."
        ),
        ErrorCategory.INSUFFICIENT_CREDITS: (
            "Check your OpenRouter account balance and add credits if needed. "
            "Visit https://openrouter.ai/account for account details."
        ),
        ErrorCategory.NOT_FOUND: (
            "Verify that the model name is correct and uses the format "
            "'provider/model' or 'provider/organization/model'."
        ),
        ErrorCategory.SERVER: (
            "This is typically a temporary issue with OpenRouter or the underlying "
            "model provider. Wait a few moments and try again."
        ),
    }),
})


def _provider_key(provider: Optional[str]) -> str:
    return (provider or DEFAULT_PROVIDER).strip().lower() or DEFAULT_PROVIDER


def standard_message(provider: str, category: ErrorCategory) -> str:
    template = CATEGORY_MESSAGES.get(category, CATEGORY_MESSAGES[ErrorCategory.UNKNOWN])
    return template.format(provider=provider or DEFAULT_PROVIDER)


def suggestion_for(provider: str, category: ErrorCategory) -> str:
    overrides = PROVIDER_SUGGESTIONS.get(_provider_key(provider), {})
    if category in overrides:
        return overrides[category]
    return CATEGORY_SUGGESTIONS.get(category, CATEGORY_SUGGESTIONS[ErrorCategory.UNKNOWN])


def create_error(
    category: ErrorCategory,
    message: str = "",
    cause: Optional[BaseException] = None,
    details: str = "",
    *,
    provider: str = DEFAULT_PROVIDER,
    code: str = "",
    status_code: int = 0,
    request_id: str = "",
    suggestion: str = "",
) -> LLMError:
    """
    Build an LLMError for ``category``.

    An empty ``message`` is replaced with the category's canned message. An
    empty ``suggestion`` is filled in from the suggestion tables.
    """
    category = ErrorCategory.parse(category)
    provider = provider or DEFAULT_PROVIDER
    return LLMError(
        message or standard_message(provider, category),
        provider=provider,
        category=category,
        code=code,
        status_code=status_code,
        request_id=request_id,
        original=cause,
        suggestion=suggestion or suggestion_for(provider, category),
        details=details,
    )


# =============================================================================
# Vendor JSON error envelopes
# =============================================================================

def _decode_body(body: ResponseBody) -> Optional[Mapping[str, Any]]:
    if body is None:
        return None
    if isinstance(body, Mapping):
        return body
    if isinstance(body, (bytes, bytearray)):
        if not body:
            return None
        try:
            body = bytes(body).decode("utf-8")
        except UnicodeDecodeError:
            return None
    if not isinstance(body, str) or not body.strip():
        return None
    try:
        data = json.loads(body)
    except ValueError:
        LOG.debug("ignoring non-JSON error body (%d chars)", len(body))
        return None
    return data if isinstance(data, Mapping) else None


def parse_error_response(body: ResponseBody) -> Tuple[str, str, str]:
    """
    Extract ``(message, status, code)`` from an ``{"error": {...}}`` envelope.

    A bare error object (what OpenAI SDK exceptions keep in ``.body``) is
    accepted as well, and its ``type`` stands in for a missing ``status``.
    Missing or malformed pieces come back as "". The code is stringified so
    integer (Gemini) and string (OpenAI) codes share one shape.
    """
    data = _decode_body(body)
    if not data:
        return "", "", ""
    error = data.get("error", data)
    if not isinstance(error, Mapping):
        return "", "", ""
    message = error.get("message")
    status = error.get("status") or error.get("type")
    code = error.get("code")
    return (
        message if isinstance(message, str) else "",
        status if isinstance(status, str) else "",
        "" if code in (None, "", 0) or isinstance(code, bool) else str(code),
    )


def format_error_details(message: str, status: str = "", code: str = "") -> str:
    if not message:
        return ""
    details = f"API Error: {message}"
    if status:
        details += f" (Status: {status})"
    if code:
        details += f" (Code: {code})"
    return details


def _http_status_from_code(code: str) -> int:
    if code.isdigit() and 100 <= int(code) <= 599:
        return int(code)
    return 0


def _request_id_of(err: BaseException) -> str:
    request_id = getattr(err, "request_id", None)
    return request_id if isinstance(request_id, str) else ""


def format_from_response(
    err: Optional[BaseException],
    status_code: int = 0,
    response_body: ResponseBody = None,
    *,
    provider: str = DEFAULT_PROVIDER,
) -> Optional[LLMError]:
    """
    Normalize an API failure using the HTTP status and the vendor error body.

    Already-structured errors are returned unchanged.
    """
    if err is None:
        return None

    existing = find_llm_error(err)
    if existing is not None:
        return existing

    body_message, vendor_status, body_code = parse_error_response(response_body)
    details = format_error_details(body_message, vendor_status, body_code)

    # A string code ("invalid_api_key") is more specific than the error type.
    category = category_from_vendor_status(body_code)
    if category is ErrorCategory.UNKNOWN:
        category = category_from_vendor_status(vendor_status)
    if category is ErrorCategory.UNKNOWN and is_safety_filter(body_message):
        category = ErrorCategory.CONTENT_FILTERED
    if category is ErrorCategory.UNKNOWN:
        category = classify(err, status_code or _http_status_from_code(body_code))

    # Vendor diagnostics stay in details; message is shown to end users.
    if category is ErrorCategory.UNKNOWN:
        message = f"{standard_message(provider, category)}: {safe_str(err)}"
    else:
        message = standard_message(provider, category)

    return create_error(
        category,
        message,
        err,
        details,
        provider=provider,
        code=body_code,
        status_code=status_code,
        request_id=_request_id_of(err),
    )


def wrap_generic(
    err: Optional[BaseException],
    provider: str = DEFAULT_PROVIDER,
) -> Optional[LLMError]:
    """
    Wrap an error that carries no HTTP status or body.

    An LLMError from the same provider is returned as-is; one from another
    provider is re-tagged for ``provider`` keeping its message and category.
    """
    if err is None:
        return None

    provider = provider or DEFAULT_PROVIDER
    existing = find_llm_error(err)
    if existing is not None:
        if existing.provider == provider:
            return existing
        return LLMError(
            existing.message,
            provider=provider,
            category=existing.category,
            code=existing.code,
            status_code=existing.status_code,
            request_id=existing.request_id,
            original=err,
            suggestion=existing.suggestion or suggestion_for(provider, existing.category),
            details=existing.details,
        )

    category = classify(err)
    return create_error(
        category,
        f"Error from {provider} provider: {safe_str(err)}",
        err,
        provider=provider,
        request_id=_request_id_of(err),
    )
