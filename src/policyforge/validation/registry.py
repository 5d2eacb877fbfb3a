"""Transform registry for policyforge.

Provides registration and lookup for named transform factories, so field
transforms can be declared as data:

    transforms: [trim, notEmpty, {maxLength: 80}]
"""

import logging
from collections.abc import Callable
from typing import Any

from policyforge.validation.types import Step

logger = logging.getLogger(__name__)

# Factory signature: (params) -> step
TransformFactory = Callable[[Any], Step]


class TransformRegistry:
    """Registry for transform factories.

    A factory receives the parameters written next to the transform name
    (None when the name is used alone) and returns a step. Factories must be
    explicitly registered before definitions can reference them; the canned
    ones are registered by register_canned_transforms().

    Example:
        @transform("slug")
        def slug(params):
            def step(value, opts):
                return re.sub(r"[^a-z0-9]+", "-", value.lower())
            return step

        step = TransformRegistry.create("slug")
    """

    _factories: dict[str, TransformFactory] = {}

    @classmethod
    def register(cls, name: str, factory: TransformFactory) -> None:
        """Register a transform factory by name.

        Idempotent - re-registering the same name is a no-op.
        """
        if name in cls._factories:
            return
        cls._factories[name] = factory

    @classmethod
    def get(cls, name: str) -> TransformFactory:
        """Get a registered factory by name.

        Raises:
            ValueError: If the transform is not registered
        """
        if name not in cls._factories:
            logger.warning("Lookup of unregistered transform '%s'", name)
            raise ValueError(
                f"Transform '{name}' is not registered. "
                "Available transforms: " + ", ".join(cls.list_registered())
            )
        return cls._factories[name]

    @classmethod
    def create(cls, name: str, params: Any = None) -> Step:
        """Build a step from a registered factory."""
        return cls.get(name)(params)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        """Check if a transform is registered."""
        return name in cls._factories

    @classmethod
    def list_registered(cls) -> list[str]:
        """List all registered transform names."""
        return sorted(cls._factories.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._factories.clear()


def transform(name: str) -> Callable[[TransformFactory], TransformFactory]:
    """Decorator to register a transform factory."""

    def decorator(factory: TransformFactory) -> TransformFactory:
        TransformRegistry.register(name, factory)
        return factory

    return decorator
