"""Output shaping.

A Formatter is the outbound counterpart of an ObjectValidator: it builds a
response record from an instance by running one function per output field.
"""

import inspect
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from policyforge.validation.types import UNSET

# Field function: (instance, field_opts) -> value, sync or async
FieldFn = Callable[[Any, dict[str, Any]], Any]


class Formatter:
    """Builds output records from instances.

    Example:
        user_view = Formatter({
            "id": lambda user, opts: user.id,
            "email": lambda user, opts: user.email if opts.get("private") else UNSET,
        })
        await user_view(user)                            # {"id": 1}
        await user_view(user, {"email": {"private": True}})
        await user_view.many(users, {"email": False})
    """

    def __init__(self, fields: Mapping[str, FieldFn]):
        self.fields = dict(fields)

    async def __call__(self, instance: Any, opts: Mapping[str, Any] | None = None) -> dict[str, Any]:
        options = opts or {}
        output: dict[str, Any] = {}

        for key, fn in self.fields.items():
            field_opts = options.get(key)
            if field_opts is False:
                continue

            field_opts = dict(field_opts) if isinstance(field_opts, Mapping) else {}
            value = fn(instance, field_opts)
            if inspect.isawaitable(value):
                value = await value

            if value is UNSET:
                continue
            output[key] = value

        return output

    async def many(
        self, instances: Iterable[Any], opts: Mapping[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        return [await self(instance, opts) for instance in instances]
