"""Canned transforms for policyforge.

Ready-to-use transform factories that can be referenced by name from
schema definitions. Each factory takes its parameters and returns a
``(value, opts)`` step.

Available transforms:
- trim, lower: string normalization
- notEmpty: reject empty strings and collections
- min, max: numeric bounds
- minLength, maxLength: length bounds
- pattern: regex match
- email, url, uuid: format checks
- oneOf: value must be one of the listed options
- round: round numbers to N digits (0 by default)
"""

import re
from typing import Any

from policyforge.errors import InvalidValueTypeError, ValidationError
from policyforge.validation.registry import TransformRegistry
from policyforge.validation.types import Step


# =============================================================================
# Format Patterns
# =============================================================================

EMAIL_PATTERN = re.compile(
    r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"
)

URL_PATTERN = re.compile(
    r"^https?://[^\s/$.?#].[^\s]*$",
    re.IGNORECASE
)

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE
)


# =============================================================================
# Normalization
# =============================================================================


def trim(params: Any = None) -> Step:
    def step(value, opts):
        if isinstance(value, str):
            return value.strip()
    return step


def lower(params: Any = None) -> Step:
    def step(value, opts):
        if isinstance(value, str):
            return value.lower()
    return step


def round_number(params: Any = None) -> Step:
    digits = int(params or 0)

    def step(value, opts):
        if isinstance(value, float):
            rounded = round(value, digits)
            return int(rounded) if digits == 0 else rounded
    return step


# =============================================================================
# Constraints
# =============================================================================


def not_empty(params: Any = None) -> Step:
    message = "this field must not be empty"

    def step(value, opts):
        if isinstance(value, str) and value.strip() == "":
            raise ValidationError(message)
        if isinstance(value, (list, tuple, dict)) and len(value) == 0:
            raise ValidationError(message)
    return step


def _require_number(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidValueTypeError("number")


def _require_sized(value: Any) -> None:
    if not isinstance(value, (str, list, tuple)):
        raise InvalidValueTypeError("string")


def minimum(params: Any) -> Step:
    bound = params

    def step(value, opts):
        _require_number(value)
        if value < bound:
            raise ValidationError(f"this field must be at least {bound}")
    return step


def maximum(params: Any) -> Step:
    bound = params

    def step(value, opts):
        _require_number(value)
        if value > bound:
            raise ValidationError(f"this field must be at most {bound}")
    return step


def min_length(params: Any) -> Step:
    bound = int(params)

    def step(value, opts):
        _require_sized(value)
        if len(value) < bound:
            raise ValidationError(f"this field must be at least {bound} characters")
    return step


def max_length(params: Any) -> Step:
    bound = int(params)

    def step(value, opts):
        _require_sized(value)
        if len(value) > bound:
            raise ValidationError(f"this field must be at most {bound} characters")
    return step


def pattern(params: Any) -> Step:
    # Invalid regexes raise re.error when the schema is built
    regex = re.compile(params)

    def step(value, opts):
        if not isinstance(value, str) or not regex.match(value):
            raise ValidationError("this field format is invalid")
    return step


def _format(regex: re.Pattern, message: str):
    def factory(params: Any = None) -> Step:
        def step(value, opts):
            if not isinstance(value, str) or not regex.match(value):
                raise ValidationError(message)
        return step
    return factory


email = _format(EMAIL_PATTERN, "this field must be a valid email address")
url = _format(URL_PATTERN, "this field must be a valid URL")
uuid = _format(UUID_PATTERN, "this field must be a valid UUID")


def one_of(params: Any) -> Step:
    options = list(params or [])

    def step(value, opts):
        if value not in options:
            raise ValidationError(f"'{value}' is not a valid option")
    return step


# =============================================================================
# Registration
# =============================================================================


CANNED_TRANSFORMS = {
    "trim": trim,
    "lower": lower,
    "round": round_number,
    "notEmpty": not_empty,
    "min": minimum,
    "max": maximum,
    "minLength": min_length,
    "maxLength": max_length,
    "pattern": pattern,
    "email": email,
    "url": url,
    "uuid": uuid,
    "oneOf": one_of,
}


def register_canned_transforms() -> None:
    """Register all canned transforms with the TransformRegistry.

    Idempotent; call once at application startup.
    """
    for name, factory in CANNED_TRANSFORMS.items():
        TransformRegistry.register(name, factory)
