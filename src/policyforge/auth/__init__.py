"""Authorization combinators for policyforge."""

from policyforge.auth.policy import (
    And,
    Not,
    Or,
    Policy,
    Predicate,
    as_policy,
    authorize,
)
from policyforge.auth.registry import PredicateRegistry, predicate

__all__ = [
    "And",
    "Not",
    "Or",
    "Policy",
    "Predicate",
    "PredicateRegistry",
    "as_policy",
    "authorize",
    "predicate",
]
