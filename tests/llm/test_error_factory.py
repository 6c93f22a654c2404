# SPDX-License-Identifier: Apache-2.0
"""
LLM errors: Factory and response formatting.

Covers:
  • create_error() fills canned messages and provider-specific suggestions
  • parse_error_response() on Gemini envelopes, OpenAI bare objects, junk input
  • format_from_response() category precedence and message/details shape
  • Safety blocks reported with a 200 status still classify as ContentFiltered
  • Idempotence: already-structured errors pass through unchanged
  • wrap_generic() message shape and cross-provider re-tagging
"""

import json

import pytest

from llmbridge.llm.error_factory import (
    CATEGORY_SUGGESTIONS,
    PROVIDER_SUGGESTIONS,
    create_error,
    format_error_details,
    format_from_response,
    parse_error_response,
    standard_message,
    suggestion_for,
    wrap_generic,
)
from llmbridge.llm.errors import ErrorCategory, LLMError


def _gemini_body(code, message, status):
    return json.dumps({"error": {"code": code, "message": message, "status": status}})


# ---------------------------------------------------------------------------
# create_error
# ---------------------------------------------------------------------------

def test_create_error_fills_canned_message_and_suggestion():
    err = create_error(ErrorCategory.AUTH, provider="gemini")

    assert err.category is ErrorCategory.AUTH
    assert err.provider == "gemini"
    assert err.message == "Authentication failed with the gemini API"
    assert "GOOGLE_API_KEY" in err.suggestion


def test_create_error_keeps_explicit_message_and_cause():
    cause = OSError("reset")
    err = create_error(ErrorCategory.NETWORK, "link down", cause, "tcp reset", provider="openai")

    assert err.message == "link down"
    assert err.unwrap() is cause
    assert err.details == "tcp reset"
    assert err.suggestion == CATEGORY_SUGGESTIONS[ErrorCategory.NETWORK]


def test_create_error_every_category_has_text():
    for category in ErrorCategory:
        err = create_error(category, provider="acme")
        assert err.message
        assert err.suggestion


def test_suggestion_overlay_falls_back_to_generic():
    # openrouter has no INPUT_LIMIT override
    assert ErrorCategory.INPUT_LIMIT not in PROVIDER_SUGGESTIONS["openrouter"]
    assert suggestion_for("openrouter", ErrorCategory.INPUT_LIMIT) == \
        CATEGORY_SUGGESTIONS[ErrorCategory.INPUT_LIMIT]
    assert suggestion_for("OpenAI", ErrorCategory.AUTH) == \
        PROVIDER_SUGGESTIONS["openai"][ErrorCategory.AUTH]


def test_standard_message_substitutes_provider():
    assert standard_message("openai", ErrorCategory.SERVER) == "openai API server error occurred"


# ---------------------------------------------------------------------------
# parse_error_response / format_error_details
# ---------------------------------------------------------------------------

def test_parse_gemini_envelope():
    body = _gemini_body(429, "Resource exhausted", "RESOURCE_EXHAUSTED")
    assert parse_error_response(body) == ("Resource exhausted", "RESOURCE_EXHAUSTED", "429")


def test_parse_accepts_bytes_and_mappings():
    raw = _gemini_body(400, "bad", "INVALID_ARGUMENT").encode("utf-8")
    assert parse_error_response(raw) == ("bad", "INVALID_ARGUMENT", "400")
    assert parse_error_response({"error": {"message": "m"}}) == ("m", "", "")


def test_parse_openai_bare_error_object():
    body = {"message": "Rate limit reached", "type": "requests", "code": "rate_limit_exceeded"}
    assert parse_error_response(body) == ("Rate limit reached", "requests", "rate_limit_exceeded")


@pytest.mark.parametrize("body", [None, "", b"", "not json", "[1, 2]", {"error": "flat string"}])
def test_parse_malformed_bodies_degrade_to_empty(body):
    assert parse_error_response(body) == ("", "", "")


def test_format_error_details():
    assert format_error_details("") == ""
    assert format_error_details("oops") == "API Error: oops"
    assert format_error_details("oops", "INTERNAL", "500") == \
        "API Error: oops (Status: INTERNAL) (Code: 500)"


# ---------------------------------------------------------------------------
# format_from_response
# ---------------------------------------------------------------------------

def test_format_rate_limit_from_status_and_message():
    raw = RuntimeError("Resource exhausted: Quota exceeded")
    err = format_from_response(raw, 429, None, provider="gemini")

    assert err.category is ErrorCategory.RATE_LIMIT
    assert err.provider == "gemini"
    assert err.status_code == 429
    assert err.suggestion == PROVIDER_SUGGESTIONS["gemini"][ErrorCategory.RATE_LIMIT]
    assert err.unwrap() is raw


def test_format_uses_vendor_status_and_keeps_details_separate():
    raw = RuntimeError("http 500")
    body = _gemini_body(429, "Quota exceeded", "RESOURCE_EXHAUSTED")
    err = format_from_response(raw, 500, body, provider="gemini")

    assert err.category is ErrorCategory.RATE_LIMIT
    assert err.code == "429"
    assert err.details == "API Error: Quota exceeded (Status: RESOURCE_EXHAUSTED) (Code: 429)"
    assert err.message == "Request rate limit exceeded on the gemini API"
    assert err.details in err.debug_info()


def test_formatted_user_facing_error_hides_details():
    body = _gemini_body(429, "Quota exceeded", "RESOURCE_EXHAUSTED")
    err = format_from_response(RuntimeError("http 429"), 429, body, provider="gemini")

    text = err.user_facing_error()
    assert err.details
    assert err.details not in text
    assert "API Error" not in text
    assert "Suggestion: " in text


def test_format_safety_block_with_success_status():
    raw = RuntimeError("generation stopped")
    body = {"error": {"message": "Response was blocked due to SAFETY"}}
    err = format_from_response(raw, 200, body, provider="gemini")

    assert err.category is ErrorCategory.CONTENT_FILTERED
    assert "content filters" in err.suggestion


def test_format_safety_does_not_override_vendor_status():
    body = {"error": {"message": "blocked", "status": "PERMISSION_DENIED"}}
    err = format_from_response(RuntimeError("x"), 403, body, provider="gemini")
    assert err.category is ErrorCategory.AUTH


def test_format_openai_code_wins_over_type():
    body = {"message": "This model's maximum context length is 4096", "type": "invalid_request_error",
            "code": "context_length_exceeded"}
    err = format_from_response(RuntimeError("bad"), 400, body, provider="openai")
    assert err.category is ErrorCategory.INPUT_LIMIT
    assert err.code == "context_length_exceeded"

    body = {"message": "Incorrect API key provided", "type": "invalid_request_error",
            "code": "invalid_api_key"}
    err = format_from_response(RuntimeError("bad"), 401, body, provider="openai")
    assert err.category is ErrorCategory.AUTH


def test_format_openai_type_used_without_code():
    body = {"message": "Unrecognized request argument", "type": "invalid_request_error"}
    err = format_from_response(RuntimeError("bad"), 400, body, provider="openai")
    assert err.category is ErrorCategory.INVALID_REQUEST


def test_format_numeric_body_code_acts_as_http_status():
    body = {"error": {"code": 404, "message": "model missing"}}
    err = format_from_response(RuntimeError("x"), 0, body, provider="gemini")
    assert err.category is ErrorCategory.NOT_FOUND
    assert err.status_code == 0


def test_format_unknown_includes_raw_error():
    err = format_from_response(RuntimeError("weird failure"), 0, None, provider="acme")
    assert err.category is ErrorCategory.UNKNOWN
    assert err.message == "Error calling acme API: weird failure"


def test_format_copies_request_id_attribute():
    raw = RuntimeError("server down")
    raw.request_id = "req_abc"
    err = format_from_response(raw, 503, None, provider="openai")
    assert err.request_id == "req_abc"
    assert err.category is ErrorCategory.SERVER


def test_format_is_idempotent():
    first = format_from_response(RuntimeError("x"), 401, None, provider="openai")
    assert format_from_response(first, 500, None, provider="gemini") is first


def test_format_none_is_none():
    assert format_from_response(None, 500, None, provider="x") is None


# ---------------------------------------------------------------------------
# wrap_generic
# ---------------------------------------------------------------------------

def test_wrap_generic_message_and_classification():
    raw = ValueError("connection refused")
    err = wrap_generic(raw, "openai")

    assert err.message == "Error from openai provider: connection refused"
    assert err.category is ErrorCategory.NETWORK
    assert err.unwrap() is raw


def test_wrap_generic_same_provider_is_identity():
    existing = create_error(ErrorCategory.AUTH, provider="openai")
    assert wrap_generic(existing, "openai") is existing


def test_wrap_generic_retags_other_provider():
    existing = create_error(ErrorCategory.RATE_LIMIT, "slow down", provider="openai", code="rl")
    err = wrap_generic(existing, "router")

    assert err is not existing
    assert isinstance(err, LLMError)
    assert err.provider == "router"
    assert err.category is ErrorCategory.RATE_LIMIT
    assert err.message == "slow down"
    assert err.code == "rl"
    assert err.unwrap() is existing


class _Unprintable(Exception):
    def __str__(self):
        raise RuntimeError("no str")


def test_wrap_generic_survives_unprintable_error():
    raw = _Unprintable()
    err = wrap_generic(raw, "gemini")

    assert err.message == "Error from gemini provider: <unprintable _Unprintable>"
    assert err.unwrap() is raw
    assert "<unprintable _Unprintable>" in str(err)


def test_format_survives_unprintable_error():
    err = format_from_response(_Unprintable(), 0, None, provider="acme")

    assert err.category is ErrorCategory.UNKNOWN
    assert err.message == "Error calling acme API: <unprintable _Unprintable>"
    assert "Original Error: <unprintable _Unprintable>" in err.debug_info()


def test_wrap_generic_none_is_none():
    assert wrap_generic(None, "x") is None
