"""Predicate registry for policyforge.

Named predicates let policies be declared as data (YAML, dicts) and
resolved to callables at load time. Follows the same pattern as
TransformRegistry.
"""

import logging
from collections.abc import Callable

from policyforge.auth.policy import Predicate, PredicateFn

logger = logging.getLogger(__name__)


class PredicateRegistry:
    """Registry for named authorization predicates.

    Predicates must be explicitly registered before a policy definition can
    reference them by name. Registration is typically done at application
    startup or with the @predicate decorator.

    Example:
        @predicate("isAdmin", message="you must be admin")
        def is_admin(request) -> bool:
            return request.headers.get("token") == ADMIN_TOKEN

        policy = as_policy({"or": ["isAdmin", "isOwner"]})
    """

    _predicates: dict[str, Predicate] = {}

    @classmethod
    def register(
        cls,
        name: str,
        check: PredicateFn,
        message: str | None = None,
    ) -> None:
        """Register a predicate function by name.

        Idempotent - re-registering the same name is a no-op.

        Args:
            name: Unique identifier referenced from policy definitions
            check: Function called with the context, may be async
            message: Denial message used when the check denies
        """
        if name in cls._predicates:
            return
        cls._predicates[name] = Predicate(check, message=message, name=name)

    @classmethod
    def get(cls, name: str) -> Predicate:
        """Get a registered predicate by name.

        Raises:
            ValueError: If the predicate is not registered
        """
        if name not in cls._predicates:
            logger.warning("Lookup of unregistered predicate '%s'", name)
            raise ValueError(
                f"Predicate '{name}' is not registered. "
                "Predicates must be explicitly registered at application startup."
            )
        return cls._predicates[name]

    @classmethod
    def is_registered(cls, name: str) -> bool:
        """Check if a predicate is registered."""
        return name in cls._predicates

    @classmethod
    def list_registered(cls) -> list[str]:
        """List all registered predicate names."""
        return sorted(cls._predicates.keys())

    @classmethod
    def clear(cls) -> None:
        """Clear all registrations. Primarily for testing."""
        cls._predicates.clear()


def predicate(
    name: str, message: str | None = None
) -> Callable[[PredicateFn], PredicateFn]:
    """Decorator to register a predicate function.

    Usage:
        @predicate("isSignedIn", message="sign in first")
        async def is_signed_in(request):
            return request.session.get("user") is not None
    """

    def decorator(fn: PredicateFn) -> PredicateFn:
        PredicateRegistry.register(name, fn, message=message)
        return fn

    return decorator
