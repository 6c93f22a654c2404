# llmbridge/llm/errors.py
# SPDX-License-Identifier: Apache-2.0
"""
Normalized LLM error taxonomy.

Every backend reports failures differently: HTTP status codes, vendor status
strings (``RESOURCE_EXHAUSTED``), OpenAI-style ``type``/``code`` pairs, or just
free text. Adapters fold all of them into a single exception type, `LLMError`,
tagged with one member of the closed `ErrorCategory` enumeration.

Callers branch on ``err.category`` (or the ``is_*`` predicates below) and
never on vendor-specific exception classes.

Surfaces
--------
- ``str(err)``                 message plus the wrapped cause (for logs).
- ``err.user_facing_error()``  message plus remediation suggestion only.
- ``err.debug_info()``         every populated field, one per line.
- ``err.to_dict()``            JSON-safe mapping of the same fields.

Only ``debug_info()`` and ``to_dict()`` may expose ``details``, ``status_code``
or the original cause. They are meant for logs, never for end users.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Dict, Optional

__all__ = [
    "ErrorCategory",
    "LLMError",
    "DEFAULT_PROVIDER",
    "find_llm_error",
    "safe_str",
    "is_auth",
    "is_rate_limit",
    "is_invalid_request",
    "is_not_found",
    "is_server",
    "is_network",
    "is_cancelled",
    "is_input_limit",
    "is_content_filtered",
    "is_insufficient_credits",
]

DEFAULT_PROVIDER = "unknown"

# Guards against cyclic cause chains when walking __cause__/original.
_MAX_CHAIN_DEPTH = 32


def safe_str(value: Any) -> str:
    """
    ``str(value)`` that never raises.

    Vendor exceptions with a broken ``__str__`` render as
    ``<unprintable TypeName>``.
    """
    try:
        return str(value)
    except Exception:  # noqa: BLE001
        return f"<unprintable {type(value).__name__}>"


class ErrorCategory(str, Enum):
    """Closed set of root-cause categories for LLM failures."""

    UNKNOWN = "Unknown"
    AUTH = "Auth"
    RATE_LIMIT = "RateLimit"
    INVALID_REQUEST = "InvalidRequest"
    NOT_FOUND = "NotFound"
    SERVER = "Server"
    NETWORK = "Network"
    CANCELLED = "Cancelled"
    INPUT_LIMIT = "InputLimit"
    CONTENT_FILTERED = "ContentFiltered"
    INSUFFICIENT_CREDITS = "InsufficientCredits"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> "ErrorCategory":
        """
        Resolve a member from a member, its value ("RateLimit") or its name
        ("RATE_LIMIT"). Anything unrecognized resolves to UNKNOWN.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return cls.UNKNOWN
        text = value.strip()
        for member in cls:
            if text == member.value or text.upper() == member.name:
                return member
        return cls.UNKNOWN


class LLMError(Exception):
    """
    Structured, provider-tagged error returned to callers of every adapter.

    Attributes:
        provider:
            Identity of the originating backend ("gemini", "openai", ...).
        category:
            ErrorCategory for programmatic handling.
        message:
            User-facing description.
        code:
            Vendor error code, "" when absent.
        status_code:
            HTTP status, 0 when absent.
        request_id:
            Upstream request identifier, "" when absent.
        original:
            Wrapped cause; also installed as ``__cause__``.
        suggestion:
            Actionable remediation text.
        details:
            Free-form diagnostics. Never shown to end users.
    """

    def __init__(
        self,
        message: str = "",
        *,
        provider: str = DEFAULT_PROVIDER,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        code: str = "",
        status_code: int = 0,
        request_id: str = "",
        original: Optional[BaseException] = None,
        suggestion: str = "",
        details: str = "",
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider or DEFAULT_PROVIDER
        self.category = ErrorCategory.parse(category)
        self.code = code or ""
        self.status_code = int(status_code or 0)
        self.request_id = request_id or ""
        self.original = original
        self.suggestion = suggestion or ""
        self.details = details or ""
        if original is not None:
            self.__cause__ = original

    def __str__(self) -> str:
        if self.original is not None:
            return f"{self.message}: {safe_str(self.original)}"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(provider={self.provider!r}, "
            f"category={self.category.value!r}, message={self.message!r})"
        )

    def unwrap(self) -> Optional[BaseException]:
        """Return the wrapped cause, or None when none was supplied."""
        return self.original

    def user_facing_error(self) -> str:
        """
        Message and suggestion only.

        Deliberately excludes details, status code, vendor code, request id
        and the original cause.
        """
        if self.suggestion:
            return f"{self.message}\n\nSuggestion: {self.suggestion}"
        return self.message

    def debug_info(self) -> str:
        lines = [
            f"Provider: {self.provider}",
            f"Error Category: {self.category.value}",
            f"Message: {self.message}",
        ]
        if self.code:
            lines.append(f"Error Code: {self.code}")
        if self.status_code:
            lines.append(f"Status Code: {self.status_code}")
        if self.request_id:
            lines.append(f"Request ID: {self.request_id}")
        if self.original is not None:
            lines.append(f"Original Error: {safe_str(self.original)}")
        if self.details:
            lines.append(f"Details: {self.details}")
        if self.suggestion:
            lines.append(f"Suggestion: {self.suggestion}")
        return "\n".join(lines) + "\n"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "category": self.category.value,
            "message": self.message,
            "code": self.code or None,
            "status_code": self.status_code or None,
            "request_id": self.request_id or None,
            "original": (safe_str(self.original) if self.original is not None else None),
            "suggestion": self.suggestion or None,
            "details": self.details or None,
        }


def find_llm_error(err: Optional[BaseException]) -> Optional[LLMError]:
    """
    Return the first LLMError in the cause chain of ``err`` (itself included).

    Follows ``__cause__``, which LLMError sets from ``original``.
    """
    seen = 0
    current = err
    while current is not None and seen < _MAX_CHAIN_DEPTH:
        if isinstance(current, LLMError):
            return current
        current = current.__cause__
        seen += 1
    return None


def _category_predicate(category: ErrorCategory) -> Callable[[Optional[BaseException]], bool]:
    def predicate(err: Optional[BaseException]) -> bool:
        found = find_llm_error(err)
        return found is not None and found.category is category

    predicate.__name__ = f"is_{category.name.lower()}"
    predicate.__doc__ = f"True if ``err`` wraps an LLMError in category {category.value}."
    return predicate


is_auth = _category_predicate(ErrorCategory.AUTH)
is_rate_limit = _category_predicate(ErrorCategory.RATE_LIMIT)
is_invalid_request = _category_predicate(ErrorCategory.INVALID_REQUEST)
is_not_found = _category_predicate(ErrorCategory.NOT_FOUND)
is_server = _category_predicate(ErrorCategory.SERVER)
is_network = _category_predicate(ErrorCategory.NETWORK)
is_cancelled = _category_predicate(ErrorCategory.CANCELLED)
is_input_limit = _category_predicate(ErrorCategory.INPUT_LIMIT)
is_content_filtered = _category_predicate(ErrorCategory.CONTENT_FILTERED)
is_insufficient_credits = _category_predicate(ErrorCategory.INSUFFICIENT_CREDITS)
