"""Core types for the policyforge validation engine.

- UNSET: marker for an absent value (distinct from None, which is null)
- FieldSpec: declarative rules for one field
- Resolved / Delegate: explicit results a transform step can return
- Lazy: handle to a validator resolved at validation time
- strip_unset: remove absent fields before serializing a record
"""

import inspect
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any


class _Unset:
    """Singleton marking an absent value.

    Falsy, and preserved by copy/deepcopy/pickle so validated records
    survive a round trip.
    """

    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False

    def __copy__(self) -> "_Unset":
        return self

    def __deepcopy__(self, memo: dict) -> "_Unset":
        return self

    def __reduce__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


# Step signature: (value, opts) -> Any, sync or async
Step = Callable[[Any, dict[str, Any]], Any]


@dataclass(frozen=True)
class Resolved:
    """Final value of a transform step. Use it to set a value to None."""

    value: Any


@dataclass(frozen=True)
class Delegate:
    """Ask the chain to run ``step`` on the same input value."""

    step: Step


# Primitive type names and the runtime types they accept. Any other name
# is a semantic type (e.g. "Item") that only tags errors.
PRIMITIVE_TYPES: dict[str, type | tuple[type, ...]] = {
    "string": str,
    "number": (int, float),
    "integer": int,
    "boolean": bool,
    "bytes": bytes,
}


def is_primitive(type_name: str | None) -> bool:
    return type_name in PRIMITIVE_TYPES


def matches_type(value: Any, type_name: str) -> bool:
    """Check a value against a primitive type name.

    bool is a subclass of int in Python but only satisfies "boolean".
    """
    if isinstance(value, bool) and type_name != "boolean":
        return False
    return isinstance(value, PRIMITIVE_TYPES[type_name])


def is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


@dataclass(frozen=True)
class FieldSpec:
    """Declarative rules for a single field.

    Attributes:
        type: Primitive type name checked at runtime, or a semantic name
              used to tag type errors raised by nested validators
        required: An absent value (after defaulting) is an error
        allow_null: None is accepted as is, skipping type and transforms
        read_only: Any supplied value is an error
        default: Substituted when the value is absent
        many: The value is a list, every element is validated
        transform: A step or ordered sequence of steps
    """

    type: str | None = None
    required: bool = False
    allow_null: bool = False
    read_only: bool = False
    default: Any = UNSET
    many: bool = False
    transform: Any = None

    @property
    def steps(self) -> tuple[Step, ...]:
        if self.transform is None:
            return ()
        if isinstance(self.transform, (list, tuple)):
            return tuple(self.transform)
        return (self.transform,)

    @property
    def array_type_name(self) -> str:
        return f"Array<{self.type}>" if self.type else "Array"


# Per-call option keys that override the stored FieldSpec
OVERRIDE_KEYS = ("required", "allow_null", "read_only", "default", "many")


async def call_step(step: Step, value: Any, opts: Mapping[str, Any]) -> Any:
    """Invoke a step and await its result if needed."""
    result = step(value, dict(opts))
    if inspect.isawaitable(result):
        result = await result
    return result


class Lazy:
    """Reference to a validator that may not exist yet.

    The resolver runs on every call, never at construction, so schemas can
    reference themselves or each other regardless of definition order:

        tree = ObjectValidator({
            "children": ValueValidator(many=True, transform=Lazy(lambda: tree)),
        })
    """

    def __init__(self, resolver: Callable[[], Step]):
        self._resolver = resolver

    def resolve(self) -> Step:
        return self._resolver()

    async def __call__(self, value: Any, opts: Mapping[str, Any] | None = None) -> Any:
        return await call_step(self.resolve(), value, opts or {})

    def __repr__(self) -> str:
        return f"Lazy({self._resolver!r})"


def lazy(resolver: Callable[[], Step]) -> Lazy:
    return Lazy(resolver)


def strip_unset(value: Any) -> Any:
    """Drop UNSET entries from validated records, recursively.

    Validated records keep absent optional fields as UNSET; use this before
    serializing them.
    """
    if isinstance(value, Mapping):
        return {k: strip_unset(v) for k, v in value.items() if v is not UNSET}
    if isinstance(value, list):
        return [strip_unset(v) for v in value if v is not UNSET]
    return value
