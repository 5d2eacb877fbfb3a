"""Record validation.

An ObjectValidator runs one step per declared field over an input mapping
and collects every field failure into a single ValidationErrors, so one
call reports every problem in the input.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from policyforge.errors import (
    InvalidValueTypeError,
    ValidationError,
    ValidationErrors,
    index_path,
)
from policyforge.validation.types import UNSET, Step, call_step, is_sequence

logger = logging.getLogger(__name__)

# Post-validation hook: (record, opts) -> record | None, sync or async
PostValidateFn = Callable[[dict[str, Any], dict[str, Any]], "dict | None | Awaitable[dict | None]"]


class ObjectValidator:
    """Validates a record (or a list of records) against a field mapping.

    Fields map a key to a step: a ValueValidator, a nested ObjectValidator,
    a Lazy handle or a plain ``(value, opts)`` function whose return value
    is used as is. Fields run sequentially in declaration order.

    Options:
        many: Validate a list of records
        partial: Skip required checks (partial updates)
        <field>: Mapping of options forwarded to that field's step, or
                 False to leave the field out of this call entirely

    Example:
        book = ObjectValidator(
            {
                "title": ValueValidator(type="string", required=True),
                "authorId": ValueValidator(type="integer"),
            },
            post_validate=require_author,
            type_name="Book",
        )
        record = await book.validate(payload, {"authorId": False})
    """

    def __init__(
        self,
        fields: Mapping[str, Step],
        post_validate: PostValidateFn | None = None,
        *,
        type_name: str = "Object",
    ):
        self.fields = dict(fields)
        self.post_validate = post_validate
        self.type_name = type_name

    async def __call__(self, value: Any, opts: Mapping[str, Any] | None = None) -> Any:
        options = dict(opts or {})
        if options.pop("many", False):
            return await self._validate_array(value, options)
        return await self._validate_object(value, options)

    async def validate(
        self,
        data: Any,
        opts: Mapping[str, Any] | None = None,
        *,
        partial: bool = False,
    ) -> dict[str, Any]:
        """Validate a single record."""
        options = dict(opts or {})
        options.pop("many", None)
        if partial:
            options["partial"] = True
        return await self._validate_object(data, options)

    async def many(
        self,
        data: Any,
        opts: Mapping[str, Any] | None = None,
        *,
        partial: bool = False,
    ) -> list[dict[str, Any]]:
        """Validate a list of records, collecting failures per index."""
        options = dict(opts or {})
        options.pop("many", None)
        if partial:
            options["partial"] = True
        return await self._validate_array(data, options)

    async def _validate_array(self, data: Any, options: dict[str, Any]) -> list[dict[str, Any]]:
        if not is_sequence(data):
            raise InvalidValueTypeError("Array")

        validated: list[dict[str, Any]] = []
        errors: list[ValidationError] = []

        for i, item in enumerate(data):
            try:
                validated.append(await self._validate_object(item, options))
            except ValidationError as e:
                e.prepend_path(index_path(i))
                errors.append(e)

        if errors:
            raise ValidationErrors(errors)

        return validated

    async def _validate_object(self, data: Any, options: dict[str, Any]) -> dict[str, Any]:
        if not isinstance(data, Mapping):
            raise InvalidValueTypeError(self.type_name)

        partial = options.get("partial", False)
        validated: dict[str, Any] = {}
        errors: list[ValidationError] = []

        for key, step in self.fields.items():
            field_opts = options.get(key)
            if field_opts is False:
                continue

            field_opts = dict(field_opts) if isinstance(field_opts, Mapping) else {}
            if partial:
                field_opts["partial"] = True

            try:
                validated[key] = await call_step(step, data.get(key, UNSET), field_opts)
            except ValidationError as e:
                e.prepend_path(key)
                errors.append(e)

        if errors:
            logger.debug(
                "%s validation failed on %d field(s): %s",
                self.type_name,
                len(errors),
                ", ".join(str(e.field) for e in errors),
            )
            raise ValidationErrors(errors)

        if self.post_validate is not None:
            result = self.post_validate(validated, options)
            if inspect.isawaitable(result):
                result = await result
            if result is not None:
                validated = result

        return validated

    def __repr__(self) -> str:
        return f"ObjectValidator({self.type_name}, fields={list(self.fields)})"


def as_schema(schema: "ObjectValidator | Mapping[str, Step]") -> ObjectValidator:
    if isinstance(schema, ObjectValidator):
        return schema
    return ObjectValidator(schema)


async def validate_object(
    schema: "ObjectValidator | Mapping[str, Step]",
    data: Any,
    opts: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Validate one record against a schema or a plain field mapping.

    Raises:
        ValidationErrors: If any field is invalid
        InvalidValueTypeError: If data is not a mapping
    """
    return await as_schema(schema).validate(data, opts)


async def validate_many(
    schema: "ObjectValidator | Mapping[str, Step]",
    data: Any,
    opts: Mapping[str, Any] | None = None,
) -> list[dict[str, Any]]:
    """Validate a list of records against a schema or a plain field mapping."""
    return await as_schema(schema).many(data, opts)
