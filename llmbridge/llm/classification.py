# llmbridge/llm/classification.py
# SPDX-License-Identifier: Apache-2.0
"""
Error classification: (error | HTTP status | vendor status) → ErrorCategory.

Precedence (highest first)
--------------------------
1. Vendor status string (``RESOURCE_EXHAUSTED``, ``rate_limit_error``, ...).
2. HTTP status code.
3. An LLMError already present in the cause chain.
4. Exception type (cancellation, timeouts, connection failures).
5. Case-insensitive keyword match on the error message.
6. ErrorCategory.UNKNOWN.

Every function here is pure and total: malformed input degrades to UNKNOWN
and nothing raises.
"""

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple

from llmbridge.llm.errors import ErrorCategory, find_llm_error, safe_str

LOG = logging.getLogger(__name__)

__all__ = [
    "VENDOR_STATUS_CATEGORIES",
    "MESSAGE_RULES",
    "classify",
    "category_from_vendor_status",
    "category_from_status_code",
    "category_from_exception_type",
    "category_from_message",
    "is_safety_filter",
]

# Keys are upper-cased; lookups normalize the same way.
VENDOR_STATUS_CATEGORIES: Mapping[str, ErrorCategory] = MappingProxyType({
    # google.rpc.Code names (Gemini / Vertex)
    "UNAUTHENTICATED": ErrorCategory.AUTH,
    "PERMISSION_DENIED": ErrorCategory.AUTH,
    "RESOURCE_EXHAUSTED": ErrorCategory.RATE_LIMIT,
    "INVALID_ARGUMENT": ErrorCategory.INVALID_REQUEST,
    "NOT_FOUND": ErrorCategory.NOT_FOUND,
    "UNAVAILABLE": ErrorCategory.SERVER,
    "INTERNAL": ErrorCategory.SERVER,
    "DEADLINE_EXCEEDED": ErrorCategory.CANCELLED,
    "CANCELLED": ErrorCategory.CANCELLED,
    "OUT_OF_RANGE": ErrorCategory.INPUT_LIMIT,
    # OpenAI-compatible error types
    "AUTHENTICATION_ERROR": ErrorCategory.AUTH,
    "INVALID_REQUEST_ERROR": ErrorCategory.INVALID_REQUEST,
    "RATE_LIMIT_ERROR": ErrorCategory.RATE_LIMIT,
    "SERVER_ERROR": ErrorCategory.SERVER,
    # OpenAI-compatible error codes
    "INVALID_API_KEY": ErrorCategory.AUTH,
    "RATE_LIMIT_EXCEEDED": ErrorCategory.RATE_LIMIT,
    "CONTEXT_LENGTH_EXCEEDED": ErrorCategory.INPUT_LIMIT,
    "MODEL_NOT_FOUND": ErrorCategory.NOT_FOUND,
    "INSUFFICIENT_QUOTA": ErrorCategory.INSUFFICIENT_CREDITS,
    "CONTENT_FILTER": ErrorCategory.CONTENT_FILTERED,
})

_STATUS_CODE_CATEGORIES: Mapping[int, ErrorCategory] = MappingProxyType({
    400: ErrorCategory.INVALID_REQUEST,
    401: ErrorCategory.AUTH,
    402: ErrorCategory.INSUFFICIENT_CREDITS,
    403: ErrorCategory.AUTH,
    404: ErrorCategory.NOT_FOUND,
    429: ErrorCategory.RATE_LIMIT,
})

# Evaluated in order; the first rule with a matching keyword wins.
MESSAGE_RULES: Tuple[Tuple[ErrorCategory, Tuple[str, ...]], ...] = (
    (ErrorCategory.AUTH, (
        "unauthorized", "authentication", "invalid api key", "api key", "invalid key",
    )),
    (ErrorCategory.INSUFFICIENT_CREDITS, (
        "insufficient credit", "credits", "payment", "billing",
    )),
    (ErrorCategory.RATE_LIMIT, (
        "rate limit", "rate-limit", "rate_limit", "ratelimit", "quota", "too many requests",
    )),
    (ErrorCategory.CONTENT_FILTERED, (
        "safety", "blocked", "filtered", "content filter", "content_filter",
        "content-filter", "content policy", "content_policy", "content-policy",
        "moderation",
    )),
    (ErrorCategory.INPUT_LIMIT, (
        "token limit", "token_limit", "token-limit", "tokens exceeds", "maximum context length",
    )),
    (ErrorCategory.NETWORK, (
        "network", "connection", "timeout",
    )),
    (ErrorCategory.CANCELLED, (
        "canceled", "cancelled", "deadline exceeded", "deadline_exceeded", "deadline-exceeded",
    )),
)

_SAFETY_KEYWORDS: Tuple[str, ...] = (
    "safety", "blocked", "content filter", "content-filter", "content policy", "content-policy",
)


def category_from_vendor_status(vendor_status: Optional[str]) -> ErrorCategory:
    if not vendor_status or not isinstance(vendor_status, str):
        return ErrorCategory.UNKNOWN
    return VENDOR_STATUS_CATEGORIES.get(vendor_status.strip().upper(), ErrorCategory.UNKNOWN)


def category_from_status_code(status_code: Any) -> ErrorCategory:
    try:
        code = int(status_code or 0)
    except (TypeError, ValueError):
        return ErrorCategory.UNKNOWN
    if code in _STATUS_CODE_CATEGORIES:
        return _STATUS_CODE_CATEGORIES[code]
    if 500 <= code <= 599:
        return ErrorCategory.SERVER
    return ErrorCategory.UNKNOWN


def category_from_exception_type(err: Optional[BaseException]) -> ErrorCategory:
    """Categorize builtin transport/cancellation exceptions by type alone."""
    if err is None:
        return ErrorCategory.UNKNOWN
    if isinstance(err, asyncio.CancelledError):
        return ErrorCategory.CANCELLED
    if isinstance(err, (TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return ErrorCategory.NETWORK
    return ErrorCategory.UNKNOWN


def category_from_message(message: Any) -> ErrorCategory:
    if not message:
        return ErrorCategory.UNKNOWN
    text = safe_str(message).lower()
    for category, keywords in MESSAGE_RULES:
        if any(k in text for k in keywords):
            return category
    return ErrorCategory.UNKNOWN


def is_safety_filter(message: Any) -> bool:
    """
    True if the message looks like a safety/content-filter rejection.

    Safety blocks can arrive with a 200 status, so callers check this before
    falling back to the generic keyword table.
    """
    if not message:
        return False
    text = safe_str(message).lower()
    return any(k in text for k in _SAFETY_KEYWORDS)


def classify(
    err: Optional[BaseException] = None,
    status_code: int = 0,
    vendor_status: str = "",
) -> ErrorCategory:
    """
    Map the available signals onto exactly one ErrorCategory.

    Args:
        err:
            The raw error, if any. Used for chain lookup, type and message.
        status_code:
            HTTP status; 0 means absent.
        vendor_status:
            Backend-specific status string; "" means absent.
    """
    category = category_from_vendor_status(vendor_status)
    if category is not ErrorCategory.UNKNOWN:
        return category

    category = category_from_status_code(status_code)
    if category is not ErrorCategory.UNKNOWN:
        return category

    if err is None:
        return ErrorCategory.UNKNOWN

    existing = find_llm_error(err)
    if existing is not None and existing.category is not ErrorCategory.UNKNOWN:
        return existing.category

    category = category_from_exception_type(err)
    if category is not ErrorCategory.UNKNOWN:
        return category

    category = category_from_message(safe_str(err))
    if category is ErrorCategory.UNKNOWN:
        LOG.debug("unclassified error %s: %s", type(err).__name__, safe_str(err))
    return category
