"""Error taxonomy for policyforge.

Every failure the engine reports on purpose is a PolicyForgeError:
- AuthorizationDenied: a policy rejected the operation
- ValidationError and its subclasses: a single invalid value
- ValidationErrors: an aggregate of child errors, addressed by field path

Errors raised while *defining* policies or schemas are ValueError subclasses
(PolicyConfigError, SchemaDefinitionError). They signal a programming mistake
and are never caught by the evaluation engine.
"""

from enum import Enum
from typing import Any


class ErrorClass(Enum):
    """Response class a failure maps to."""

    DENY = "deny"
    BAD_INPUT = "bad_input"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


# =============================================================================
# Base
# =============================================================================


class PolicyForgeError(Exception):
    """Base class of every taxonomy error.

    Subclasses override ``default_message``, ``status`` and ``error_class``.
    ``default_message`` is looked up at construction time, so assigning a new
    value on the class (see EngineConfig.apply) changes later errors only.
    """

    default_message = "Error"
    status = 500
    error_class = ErrorClass.INTERNAL

    def __init__(self, message: str | None = None):
        self.message = message or type(self).default_message
        super().__init__(self.message)

    def to_structured(self) -> Any:
        return {"error": self.message}


class BadRequestError(PolicyForgeError):
    default_message = "Bad request"
    status = 400
    error_class = ErrorClass.BAD_INPUT


class NotFoundError(PolicyForgeError):
    """A referenced resource does not exist.

    Attributes:
        resource: Name of the missing resource (e.g. "book"), if known
    """

    default_message = "Not found"
    status = 404
    error_class = ErrorClass.NOT_FOUND

    def __init__(self, resource: str | None = None, message: str | None = None):
        super().__init__(message)
        self.resource = resource

    def to_structured(self) -> Any:
        structured = super().to_structured()
        if self.resource:
            structured["resource"] = self.resource
        return structured


class AuthorizationDenied(PolicyForgeError):
    default_message = "Unauthorized"
    status = 401
    error_class = ErrorClass.DENY


# =============================================================================
# Validation errors
# =============================================================================


class ValidationError(BadRequestError):
    """A single invalid value.

    Raised directly by transforms for business-rule failures. ``field`` is the
    path locating the value inside its parent. ObjectValidator and many-mode
    validation prefix it with the key or index of each enclosing value.
    """

    default_message = "Invalid"

    def __init__(self, message: str | None = None, field: str | None = None):
        super().__init__(message)
        self.field = field

    def prepend_path(self, segment: str) -> None:
        """Prefix the path with the segment locating the parent value."""
        self.field = join_path(segment, self.field)

    def to_structured(self) -> Any:
        if not self.field:
            return self.message
        return {self.field: self.message}


class MissingValueError(ValidationError):
    default_message = "Missing value"


class ReadOnlyValueError(ValidationError):
    default_message = "Read only value"


class InvalidValueTypeError(ValidationError):
    """The runtime type of a value does not match the declared one.

    Attributes:
        expected_type: Declared type name (e.g. "number", "Array<string>", "Item")
    """

    default_message = "Invalid value type"

    def __init__(
        self,
        expected_type: str | None = None,
        message: str | None = None,
        field: str | None = None,
    ):
        super().__init__(message, field)
        self.expected_type = expected_type


class ValidationErrors(ValidationError):
    """Aggregate of validation errors.

    Children keep their own path segment; ``flatten()`` joins segments with
    ``.`` from the outermost aggregate down, preserving child order.
    """

    def __init__(self, errors: list[ValidationError], field: str | None = None):
        Exception.__init__(self)
        self.errors = list(errors)
        self.field = field

    @property
    def message(self) -> str:
        """Summary of every child error, built from the current paths."""
        lines = [f"  {path} => {message}" for path, message in self.flatten().items()]
        total = len(lines)
        header = f"ValidationErrors: {total} error{'' if total == 1 else 's'}"
        return "\n".join([header, *lines])

    def _flatten_children(self) -> dict[str, str]:
        flat: dict[str, str] = {}
        for error in self.errors:
            if isinstance(error, ValidationErrors):
                flat.update(error.flatten())
            else:
                flat[error.field or ""] = error.message
        return flat

    def flatten(self) -> dict[str, str]:
        """Return the ordered ``path -> message`` projection of this tree."""
        return {
            join_path(self.field, path): message
            for path, message in self._flatten_children().items()
        }

    def to_structured(self) -> Any:
        return self.flatten()

    def __len__(self) -> int:
        return len(self.errors)

    def __iter__(self):
        return iter(self.errors)

    def __str__(self) -> str:
        return self.message


def join_path(prefix: str | None, path: str | None) -> str:
    """Join two field path segments with a dot, skipping empty ones."""
    if not prefix:
        return path or ""
    if not path:
        return prefix
    return f"{prefix}.{path}"


def index_path(index: int) -> str:
    """Path segment for an array element."""
    return f"[{index}]"


# =============================================================================
# Definition errors
# =============================================================================


class PolicyConfigError(ValueError):
    """A policy tree has a shape the authorizer does not understand."""


class MissingOperatorError(PolicyConfigError):
    def __init__(self, keys: list[str] | None = None):
        detail = f" (keys: {', '.join(keys)})" if keys else ""
        super().__init__(f"missing operator{detail}")


class InvalidOperatorError(PolicyConfigError):
    def __init__(self, operator: str):
        self.operator = operator
        super().__init__(f"invalid operator {operator}")


class SchemaDefinitionError(ValueError):
    """A schema definition references something that does not exist."""
