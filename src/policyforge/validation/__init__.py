"""Declarative value and record validation for policyforge.

Usage:
    from policyforge.validation import ObjectValidator, ValueValidator

    person = ObjectValidator({
        "name": ValueValidator(type="string", required=True),
        "age": ValueValidator(type="number", transform=non_negative),
    })
    record = await person.validate({"name": "Bob", "age": 3})
"""

from policyforge.validation.registry import TransformRegistry, transform
from policyforge.validation.schema import (
    ObjectValidator,
    as_schema,
    validate_many,
    validate_object,
)
from policyforge.validation.transforms import register_canned_transforms
from policyforge.validation.types import (
    UNSET,
    Delegate,
    FieldSpec,
    Lazy,
    Resolved,
    lazy,
    strip_unset,
)
from policyforge.validation.value import ValueValidator, validate_value

__all__ = [
    "Delegate",
    "FieldSpec",
    "Lazy",
    "ObjectValidator",
    "Resolved",
    "TransformRegistry",
    "UNSET",
    "ValueValidator",
    "as_schema",
    "lazy",
    "register_canned_transforms",
    "strip_unset",
    "transform",
    "validate_many",
    "validate_object",
    "validate_value",
]
