# llmbridge/llm/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
LLM error normalization and parameter adapter - Public API

All public types and helpers are re-exported here for clean imports.
The OpenAI SDK translation lives in `llmbridge.llm.openai_errors` and is not
imported here, so the optional ``openai`` dependency stays optional.
"""

from llmbridge.llm.errors import (
    # Error taxonomy
    DEFAULT_PROVIDER,
    ErrorCategory,
    LLMError,
    find_llm_error,
    safe_str,

    # Category predicates
    is_auth,
    is_rate_limit,
    is_invalid_request,
    is_not_found,
    is_server,
    is_network,
    is_cancelled,
    is_input_limit,
    is_content_filtered,
    is_insufficient_credits,
)
from llmbridge.llm.classification import (
    VENDOR_STATUS_CATEGORIES,
    classify,
    category_from_vendor_status,
    category_from_status_code,
    category_from_exception_type,
    category_from_message,
    is_safety_filter,
)
from llmbridge.llm.error_factory import (
    create_error,
    parse_error_response,
    format_error_details,
    format_from_response,
    wrap_generic,
)
from llmbridge.llm.params import (
    INT32_MIN,
    INT32_MAX,
    ParamKind,
    ParameterRule,
    ParameterViolation,
    PARAMETER_RULES,
    coerce_float,
    coerce_int,
    coerce,
    first_present,
    collect_violations,
    validate_parameters,
)
from llmbridge.llm.llm_base import (
    # Context and metrics
    OperationContext,
    MetricsSink,
    NoopMetrics,

    # Result models
    Safety,
    ProviderResult,

    # Client protocols
    GenerationClient,
    SupportsTemperature,
    SupportsTopP,
    SupportsTopK,
    SupportsMaxOutputTokens,
    SupportsMaxTokens,
    SupportsFrequencyPenalty,
    SupportsPresencePenalty,
)
from llmbridge.llm.adapter import (
    SetterSpec,
    SETTER_SPECS,
    ClientCapabilities,
    detect_capabilities,
    ClientAdapter,
)

__all__ = [
    # Error taxonomy
    "DEFAULT_PROVIDER",
    "ErrorCategory",
    "LLMError",
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

    # Classification
    "VENDOR_STATUS_CATEGORIES",
    "classify",
    "category_from_vendor_status",
    "category_from_status_code",
    "category_from_exception_type",
    "category_from_message",
    "is_safety_filter",

    # Error factory
    "create_error",
    "parse_error_response",
    "format_error_details",
    "format_from_response",
    "wrap_generic",

    # Parameters
    "INT32_MIN",
    "INT32_MAX",
    "ParamKind",
    "ParameterRule",
    "ParameterViolation",
    "PARAMETER_RULES",
    "coerce_float",
    "coerce_int",
    "coerce",
    "first_present",
    "collect_violations",
    "validate_parameters",

    # Context, metrics, results
    "OperationContext",
    "MetricsSink",
    "NoopMetrics",
    "Safety",
    "ProviderResult",

    # Client protocols
    "GenerationClient",
    "SupportsTemperature",
    "SupportsTopP",
    "SupportsTopK",
    "SupportsMaxOutputTokens",
    "SupportsMaxTokens",
    "SupportsFrequencyPenalty",
    "SupportsPresencePenalty",

    # Adapter
    "SetterSpec",
    "SETTER_SPECS",
    "ClientCapabilities",
    "detect_capabilities",
    "ClientAdapter",
]
