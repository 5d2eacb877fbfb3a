"""Policy trees and their evaluation.

A policy is one of four node types:
- Predicate: a leaf check run against the context
- And: every child must allow, evaluated in order, first denial wins
- Or: the first child that allows wins, otherwise the last denial is raised
- Not: inverts its child

Trees can be written with the node classes directly or in shorthand, which
``as_policy`` converts at construction time:

    Or([And([is_signed_in, is_owner]), "isAdmin"], message="Forbidden")
    {"or": [["isSignedIn", "isOwner"], "isAdmin"], "message": "Forbidden"}

Shorthand rules: a callable becomes a Predicate, a list or tuple becomes an
And, a string is looked up in the PredicateRegistry, and a mapping must hold
exactly one of the ``and`` / ``or`` / ``not`` operators plus an optional
``message``.
"""

import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from policyforge.errors import (
    AuthorizationDenied,
    InvalidOperatorError,
    MissingOperatorError,
    PolicyConfigError,
)

logger = logging.getLogger(__name__)

# Predicate signature: (context) -> bool | None, sync or async
PredicateFn = Callable[[Any], "bool | None | Awaitable[bool | None]"]

OPERATORS = ("and", "or", "not")


class Policy:
    """Base class of policy nodes.

    Nodes are immutable and stateless; ``authorize`` may be awaited any
    number of times with different contexts.
    """

    message: str | None = None

    async def authorize(self, context: Any) -> None:
        """Return if the context is allowed, raise AuthorizationDenied otherwise."""
        raise NotImplementedError("Subclasses must implement authorize()")

    def _deny(self, denial: AuthorizationDenied) -> None:
        """Re-raise a child denial, with this node's message if it has one."""
        if self.message is None:
            raise denial
        raise AuthorizationDenied(self.message) from denial


@dataclass(frozen=True)
class Predicate(Policy):
    """Leaf policy wrapping a check function.

    The check denies by returning ``False`` (exactly) or by raising
    AuthorizationDenied. Any other return value allows. Other exceptions
    are programming errors and propagate untouched.

    Attributes:
        check: Function called with the context, may be async
        message: Replaces the message of any denial from this leaf
        name: Registered name, for logging
    """

    check: PredicateFn
    message: str | None = None
    name: str | None = None

    async def authorize(self, context: Any) -> None:
        try:
            result = self.check(context)
            if inspect.isawaitable(result):
                result = await result
        except AuthorizationDenied as e:
            self._deny(e)

        if result is False:
            raise AuthorizationDenied(self.message)


@dataclass(frozen=True)
class And(Policy):
    children: tuple[Policy, ...]
    message: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "children", _coerce_children(self.children))

    async def authorize(self, context: Any) -> None:
        for child in self.children:
            try:
                await child.authorize(context)
            except AuthorizationDenied as e:
                self._deny(e)


@dataclass(frozen=True)
class Or(Policy):
    """Allows as soon as one child allows.

    Children run one at a time, in order. An Or without children allows.
    """

    children: tuple[Policy, ...]
    message: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "children", _coerce_children(self.children))

    async def authorize(self, context: Any) -> None:
        denial: AuthorizationDenied | None = None

        for child in self.children:
            try:
                await child.authorize(context)
                return
            except AuthorizationDenied as e:
                denial = e

        if denial is not None:
            self._deny(denial)


@dataclass(frozen=True)
class Not(Policy):
    """Allows when the child denies, denies when the child allows.

    The child's own message is never used: it describes a denial that did
    not happen.
    """

    child: Policy
    message: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "child", as_policy(self.child))

    async def authorize(self, context: Any) -> None:
        try:
            await self.child.authorize(context)
        except AuthorizationDenied:
            return
        raise AuthorizationDenied(self.message)


# =============================================================================
# Shorthand coercion
# =============================================================================


def as_policy(definition: Any) -> Policy:
    """Convert a policy definition in shorthand form to a Policy node.

    Raises:
        PolicyConfigError: If the definition has no recognizable shape
        ValueError: If a predicate name is not registered
    """
    if isinstance(definition, Policy):
        return definition

    if isinstance(definition, str):
        from policyforge.auth.registry import PredicateRegistry

        return PredicateRegistry.get(definition)

    if isinstance(definition, (list, tuple)):
        return And(tuple(definition))

    if isinstance(definition, Mapping):
        return _from_mapping(definition)

    if callable(definition):
        return Predicate(definition)

    raise PolicyConfigError(f"invalid policy type: {type(definition).__name__}")


def _coerce_children(children: Any) -> tuple[Policy, ...]:
    if not isinstance(children, (list, tuple)):
        raise PolicyConfigError(
            f"policy children must be a list, got {type(children).__name__}"
        )
    return tuple(as_policy(child) for child in children)


def _from_mapping(data: Mapping) -> Policy:
    keys = [str(k) for k in data.keys()]
    message = data.get("message")

    for key in keys:
        if key not in OPERATORS and key != "message":
            raise InvalidOperatorError(key)

    operators = [key for key in keys if key in OPERATORS]
    if not operators:
        raise MissingOperatorError(keys)
    if len(operators) > 1:
        raise PolicyConfigError(
            f"ambiguous policy: exactly one operator expected, got {', '.join(operators)}"
        )

    op = operators[0]
    if op == "and":
        return And(data[op], message=message)
    if op == "or":
        return Or(data[op], message=message)
    return Not(data[op], message=message)


# =============================================================================
# Entry point
# =============================================================================


async def authorize(policy: Any, context: Any) -> None:
    """Evaluate a policy (node or shorthand) against a context.

    Args:
        policy: Policy node or shorthand definition
        context: Opaque request-like object handed to every predicate

    Raises:
        AuthorizationDenied: If the policy denies
        PolicyConfigError: If the policy is malformed
    """
    node = as_policy(policy)
    try:
        await node.authorize(context)
    except AuthorizationDenied as e:
        logger.debug("Authorization denied: %s", e.message)
        raise
