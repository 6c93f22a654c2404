# llmbridge/llm/params.py
# SPDX-License-Identifier: Apache-2.0
"""
Generation parameter coercion and range validation.

Parameter bags are untyped ``Mapping[str, Any]`` values supplied by callers
and config layers, so the same logical value can arrive as ``1``, ``1.0`` or
a numpy scalar. Coercion folds those into one of two kinds:

    ParamKind.FLOAT  → float
    ParamKind.INT    → int within the signed 32-bit range

Coercion is a query, not a conversion: an absent key or an unsupported type
yields ``(0, False)`` instead of raising. Validation only range-checks values
that coerce; type mismatches are ignored at this layer.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence, Tuple, Union

from llmbridge.llm.error_factory import create_error
from llmbridge.llm.errors import DEFAULT_PROVIDER, ErrorCategory

__all__ = [
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
]

INT32_MIN = -(2 ** 31)
INT32_MAX = 2 ** 31 - 1

Number = Union[int, float]


class ParamKind(str, Enum):
    FLOAT = "float"
    INT = "int"


def _is_numeric(value: Any) -> bool:
    # bool is an int subclass but never a sampling parameter
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def coerce_float(bag: Optional[Mapping[str, Any]], name: str) -> Tuple[float, bool]:
    """
    Read ``bag[name]`` as a float.

    Returns ``(value, True)`` for any real number, ``(0.0, False)`` if the key
    is absent or holds a non-numeric value.
    """
    if not bag or name not in bag:
        return 0.0, False
    value = bag[name]
    if not _is_numeric(value):
        return 0.0, False
    try:
        return float(value), True
    except (TypeError, ValueError, OverflowError):
        return 0.0, False


def coerce_int(bag: Optional[Mapping[str, Any]], name: str) -> Tuple[int, bool]:
    """
    Read ``bag[name]`` as a signed 32-bit integer.

    Floats are truncated toward zero. Values that fall outside the int32 range,
    NaN and infinities yield ``(0, False)`` rather than a wrapped value.
    """
    if not bag or name not in bag:
        return 0, False
    value = bag[name]
    if not _is_numeric(value):
        return 0, False
    if isinstance(value, numbers.Integral):
        result = int(value)
    else:
        as_float = float(value)
        if not math.isfinite(as_float):
            return 0, False
        result = math.trunc(as_float)
    if result < INT32_MIN or result > INT32_MAX:
        return 0, False
    return result, True


def coerce(bag: Optional[Mapping[str, Any]], name: str, kind: ParamKind) -> Tuple[Number, bool]:
    if kind is ParamKind.INT:
        return coerce_int(bag, name)
    return coerce_float(bag, name)


def first_present(
    bag: Optional[Mapping[str, Any]],
    names: Sequence[str],
    kind: ParamKind,
) -> Tuple[Optional[str], Number, bool]:
    """
    Try ``names`` in order and return the first that coerces.

    Used for generic-name-then-alias lookups, e.g.
    ``("max_output_tokens", "max_tokens")``.
    """
    for name in names:
        value, ok = coerce(bag, name, kind)
        if ok:
            return name, value, True
    return None, 0, False


# =============================================================================
# Validation
# =============================================================================

@dataclass(frozen=True)
class ParameterRule:
    """
    Semantic bounds for one parameter.

    ``minimum``/``maximum`` are inclusive unless ``exclusive_minimum`` is set.
    ``None`` means unbounded on that side.
    """
    name: str
    kind: ParamKind
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: bool = False

    def describe(self) -> str:
        if self.minimum is not None and self.maximum is not None:
            return f"must be between {self.minimum} and {self.maximum}"
        if self.minimum is not None and self.exclusive_minimum:
            return f"must be greater than {self.minimum:g}"
        if self.minimum is not None:
            return f"must be at least {self.minimum}"
        return f"must be at most {self.maximum}"

    def accepts(self, value: Number) -> bool:
        # NaN fails every comparison and is therefore rejected.
        if self.minimum is not None:
            if self.exclusive_minimum and not value > self.minimum:
                return False
            if not self.exclusive_minimum and not value >= self.minimum:
                return False
        if self.maximum is not None and not value <= self.maximum:
            return False
        return True


@dataclass(frozen=True)
class ParameterViolation:
    """``value`` is what the caller supplied, before coercion."""
    name: str
    value: Any
    rule: ParameterRule

    def describe(self) -> str:
        return f"{self.name}={self.value} {self.rule.describe()}"


PARAMETER_RULES: Tuple[ParameterRule, ...] = (
    ParameterRule("temperature", ParamKind.FLOAT, minimum=0.0, maximum=2.0),
    ParameterRule("top_p", ParamKind.FLOAT, minimum=0.0, maximum=1.0),
    ParameterRule("top_k", ParamKind.INT, minimum=0, exclusive_minimum=True),
    ParameterRule("max_output_tokens", ParamKind.INT, minimum=0, exclusive_minimum=True),
    ParameterRule("max_tokens", ParamKind.INT, minimum=0, exclusive_minimum=True),
    ParameterRule("frequency_penalty", ParamKind.FLOAT, minimum=-2.0, maximum=2.0),
    ParameterRule("presence_penalty", ParamKind.FLOAT, minimum=-2.0, maximum=2.0),
)

_AGGREGATE_SUGGESTION = (
    "Check the parameter values against the supported ranges and adjust "
    "every parameter listed in the error."
)


def collect_violations(bag: Optional[Mapping[str, Any]]) -> List[ParameterViolation]:
    """Return every range violation in ``bag``, in rule order."""
    violations: List[ParameterViolation] = []
    if not bag:
        return violations
    for rule in PARAMETER_RULES:
        if rule.name not in bag:
            continue
        value, ok = coerce(bag, rule.name, rule.kind)
        if not ok:
            continue
        if not rule.accepts(value):
            violations.append(ParameterViolation(rule.name, bag[rule.name], rule))
    return violations


def validate_parameters(
    bag: Optional[Mapping[str, Any]],
    *,
    provider: str = DEFAULT_PROVIDER,
) -> None:
    """
    Raise an INVALID_REQUEST LLMError if any known parameter is out of range.

    A single violation names the parameter, value and bound. Several are
    aggregated into one error whose message lists each, separated by "; ".
    """
    violations = collect_violations(bag)
    if not violations:
        return
    if len(violations) == 1:
        v = violations[0]
        raise create_error(
            ErrorCategory.INVALID_REQUEST,
            f"Invalid {v.name} parameter: {v.value} ({v.rule.describe()})",
            provider=provider,
            details=v.describe(),
        )
    descriptions = "; ".join(v.describe() for v in violations)
    raise create_error(
        ErrorCategory.INVALID_REQUEST,
        f"Invalid parameters: {descriptions}",
        provider=provider,
        details=descriptions,
        suggestion=_AGGREGATE_SUGGESTION,
    )
