"""policyforge: declarative authorization policies and schema validation.

Usage:
    from policyforge import Or, ObjectValidator, ValueValidator, authorize

    can_edit = Or(["isOwner", "isAdmin"], message="You cannot edit this post")
    await authorize(can_edit, context)
"""

from policyforge.auth import (
    And,
    Not,
    Or,
    Policy,
    Predicate,
    PredicateRegistry,
    as_policy,
    authorize,
    predicate,
)
from policyforge.config import EngineConfig
from policyforge.errors import (
    AuthorizationDenied,
    BadRequestError,
    ErrorClass,
    InvalidOperatorError,
    InvalidValueTypeError,
    MissingOperatorError,
    MissingValueError,
    NotFoundError,
    PolicyConfigError,
    PolicyForgeError,
    ReadOnlyValueError,
    SchemaDefinitionError,
    ValidationError,
    ValidationErrors,
)
from policyforge.formatter import Formatter
from policyforge.loader import DefinitionLoader
from policyforge.validation import (
    UNSET,
    Delegate,
    FieldSpec,
    Lazy,
    ObjectValidator,
    Resolved,
    TransformRegistry,
    ValueValidator,
    lazy,
    register_canned_transforms,
    strip_unset,
    transform,
    validate_many,
    validate_object,
    validate_value,
)

__all__ = [
    "And",
    "AuthorizationDenied",
    "BadRequestError",
    "Delegate",
    "DefinitionLoader",
    "EngineConfig",
    "ErrorClass",
    "FieldSpec",
    "Formatter",
    "InvalidOperatorError",
    "InvalidValueTypeError",
    "Lazy",
    "MissingOperatorError",
    "MissingValueError",
    "Not",
    "NotFoundError",
    "ObjectValidator",
    "Or",
    "Policy",
    "PolicyConfigError",
    "PolicyForgeError",
    "Predicate",
    "PredicateRegistry",
    "ReadOnlyValueError",
    "Resolved",
    "SchemaDefinitionError",
    "TransformRegistry",
    "UNSET",
    "ValidationError",
    "ValidationErrors",
    "ValueValidator",
    "as_policy",
    "authorize",
    "lazy",
    "predicate",
    "register_canned_transforms",
    "strip_unset",
    "transform",
    "validate_many",
    "validate_object",
    "validate_value",
]
