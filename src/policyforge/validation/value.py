"""Single-field validation.

A ValueValidator applies a FieldSpec to one raw value:
1. read-only check
2. default substitution
3. required check (skipped in partial mode)
4. null short-circuit
5. array handling for ``many`` fields
6. primitive type check
7. transform chain
"""

import copy
from collections.abc import Mapping
from typing import Any

from policyforge.errors import (
    InvalidValueTypeError,
    MissingValueError,
    ReadOnlyValueError,
    ValidationError,
    ValidationErrors,
    index_path,
)
from policyforge.validation.types import (
    OVERRIDE_KEYS,
    UNSET,
    Delegate,
    FieldSpec,
    Resolved,
    Step,
    call_step,
    is_primitive,
    is_sequence,
    matches_type,
)


class ValueValidator:
    """Validates and coerces one field value.

    Example:
        age = ValueValidator(type="number", allow_null=True, transform=positive)
        await age(42)             # 42
        await age(None)           # None
        await age("42")           # InvalidValueTypeError("number")
        await age(UNSET, {"required": True})  # MissingValueError

    Options passed at call time override ``required``, ``allow_null``,
    ``read_only``, ``default`` and ``many`` for that call only. Every other
    option (including ``partial``) is forwarded to the transform steps.
    """

    def __init__(self, spec: FieldSpec | None = None, **fields: Any):
        if spec is not None and fields:
            raise TypeError("pass either a FieldSpec or keyword fields, not both")
        self.spec = spec if spec is not None else FieldSpec(**fields)

    async def __call__(self, value: Any = UNSET, opts: Mapping[str, Any] | None = None) -> Any:
        options = dict(opts or {})
        spec = self.spec
        overrides = {key: options.pop(key) for key in OVERRIDE_KEYS if key in options}

        read_only = overrides.get("read_only", spec.read_only)
        required = overrides.get("required", spec.required)
        allow_null = overrides.get("allow_null", spec.allow_null)
        many = overrides.get("many", spec.many)
        default = overrides.get("default", spec.default)

        if read_only:
            if value is UNSET:
                return UNSET
            raise ReadOnlyValueError()

        if value is UNSET:
            value = copy.deepcopy(default)

        if value is UNSET:
            if required and not options.get("partial", False):
                raise MissingValueError()
            return UNSET

        if value is None and allow_null:
            return None

        if many:
            return await self._validate_array(value, options)

        self._check_type(value)
        return await self._apply_transforms(value, options)

    async def validate(self, value: Any = UNSET, opts: Mapping[str, Any] | None = None) -> Any:
        return await self(value, opts)

    async def _validate_array(self, value: Any, options: dict[str, Any]) -> list[Any]:
        if not is_sequence(value):
            raise InvalidValueTypeError(self.spec.array_type_name)

        validated: list[Any] = []
        errors: list[ValidationError] = []

        for i, item in enumerate(value):
            try:
                self._check_type(item)
                validated.append(await self._apply_transforms(item, options))
            except ValidationError as e:
                e.prepend_path(index_path(i))
                errors.append(e)

        if errors:
            raise ValidationErrors(errors)

        return validated

    def _check_type(self, value: Any) -> None:
        type_name = self.spec.type
        if is_primitive(type_name) and not matches_type(value, type_name):
            raise InvalidValueTypeError(type_name)

    async def _apply_transforms(self, value: Any, options: dict[str, Any]) -> Any:
        for step in self.spec.steps:
            value = await self._run_step(step, value, options)
        return value

    async def _run_step(self, step: Step, value: Any, options: dict[str, Any]) -> Any:
        """Run one step, following Delegate results until a value comes out.

        None and UNSET results keep the current value.
        """
        current = step
        try:
            while True:
                result = await call_step(current, value, options)
                if isinstance(result, Delegate):
                    current = result.step
                    continue
                if isinstance(result, Resolved):
                    return result.value
                if result is None or result is UNSET:
                    return value
                return result
        except InvalidValueTypeError as e:
            # Nested schemas raise "Object"; report the declared semantic type
            type_name = self.spec.type
            if type_name and not is_primitive(type_name):
                e.expected_type = type_name
            raise

    def __repr__(self) -> str:
        return f"ValueValidator({self.spec!r})"


async def validate_value(
    field_spec: FieldSpec | ValueValidator | Mapping[str, Any],
    value: Any = UNSET,
    opts: Mapping[str, Any] | None = None,
) -> Any:
    """Validate a single value against a field specification.

    Args:
        field_spec: FieldSpec, ValueValidator, or FieldSpec keywords as a dict
        value: Raw value, UNSET when absent
        opts: Per-call overrides and options forwarded to transforms

    Returns:
        The coerced value, or UNSET for an absent optional value
    """
    if isinstance(field_spec, ValueValidator):
        validator = field_spec
    elif isinstance(field_spec, FieldSpec):
        validator = ValueValidator(field_spec)
    else:
        validator = ValueValidator(**field_spec)
    return await validator(value, opts)
