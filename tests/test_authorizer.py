"""Tests for policy trees and their evaluation."""

import logging
from unittest.mock import AsyncMock

import pytest

from policyforge.auth import (
    And,
    Not,
    Or,
    Predicate,
    PredicateRegistry,
    as_policy,
    authorize,
    predicate,
)
from policyforge.errors import (
    AuthorizationDenied,
    InvalidOperatorError,
    MissingOperatorError,
    PolicyConfigError,
)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clear_predicate_registry():
    """Clear predicate registry before and after each test."""
    PredicateRegistry.clear()
    yield
    PredicateRegistry.clear()


def allow(message=None):
    return Predicate(AsyncMock(return_value=True), message=message)


def deny(message=None):
    return Predicate(AsyncMock(return_value=False), message=message)


def is_signed_in(ctx):
    return ctx.get("user") is not None


def is_owner(ctx):
    if ctx["post"]["owner"] != ctx["user"]:
        raise AuthorizationDenied("you must be owner")


def is_admin(ctx):
    if not ctx.get("admin"):
        raise AuthorizationDenied("you must be admin")


# =============================================================================
# Predicate tests
# =============================================================================


class TestPredicate:
    @pytest.mark.asyncio
    async def test_true_allows(self):
        await authorize(lambda ctx: True, {})

    @pytest.mark.asyncio
    async def test_none_allows(self):
        await authorize(lambda ctx: None, {})

    @pytest.mark.asyncio
    async def test_false_denies_with_default_message(self):
        with pytest.raises(AuthorizationDenied) as exc_info:
            await authorize(lambda ctx: False, {})
        assert exc_info.value.message == "Unauthorized"

    @pytest.mark.asyncio
    async def test_false_denies_with_predicate_message(self):
        with pytest.raises(AuthorizationDenied, match="sign in first"):
            await authorize(Predicate(lambda ctx: False, message="sign in first"), {})

    @pytest.mark.asyncio
    async def test_async_check(self):
        check = AsyncMock(return_value=True)
        await authorize(check, {"user": 1})
        check.assert_awaited_once_with({"user": 1})

    @pytest.mark.asyncio
    async def test_raised_denial_keeps_its_message(self):
        with pytest.raises(AuthorizationDenied, match="you must be admin"):
            await authorize(is_admin, {})

    @pytest.mark.asyncio
    async def test_predicate_message_overrides_raised_denial(self):
        with pytest.raises(AuthorizationDenied) as exc_info:
            await authorize(Predicate(is_admin, message="admins only"), {})
        assert exc_info.value.message == "admins only"
        assert exc_info.value.__cause__.message == "you must be admin"

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self):
        def broken(ctx):
            raise RuntimeError("database down")

        with pytest.raises(RuntimeError, match="database down"):
            await authorize(Or([broken, lambda ctx: True]), {})


# =============================================================================
# Combinator tests
# =============================================================================


class TestAnd:
    @pytest.mark.asyncio
    async def test_all_allow(self):
        await authorize(And([allow(), allow()]), {})

    @pytest.mark.asyncio
    async def test_empty_allows(self):
        await authorize(And([]), {})

    @pytest.mark.asyncio
    async def test_short_circuits_on_first_denial(self):
        first = deny("first")
        second = allow()

        with pytest.raises(AuthorizationDenied, match="first"):
            await authorize(And([first, second]), {})
        first.check.assert_awaited_once()
        second.check.assert_not_called()

    @pytest.mark.asyncio
    async def test_runs_children_in_order(self):
        calls = []
        policy = And([
            lambda ctx: calls.append("a"),
            lambda ctx: calls.append("b"),
            lambda ctx: calls.append("c"),
        ])
        await authorize(policy, {})
        assert calls == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_own_message_overrides_child(self):
        with pytest.raises(AuthorizationDenied) as exc_info:
            await authorize(And([allow(), deny("child")], message="outer"), {})
        assert exc_info.value.message == "outer"
        assert exc_info.value.__cause__.message == "child"


class TestOr:
    @pytest.mark.asyncio
    async def test_first_success_short_circuits(self):
        first = allow()
        second = allow()
        await authorize(Or([first, second]), {})
        first.check.assert_awaited_once()
        second.check.assert_not_called()

    @pytest.mark.asyncio
    async def test_tries_every_child_before_denying(self):
        children = [deny("a"), deny("b"), deny("c")]
        with pytest.raises(AuthorizationDenied):
            await authorize(Or(children), {})
        for child in children:
            child.check.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_raises_last_denial(self):
        with pytest.raises(AuthorizationDenied) as exc_info:
            await authorize(Or([deny("a"), deny("b")]), {})
        assert exc_info.value.message == "b"

    @pytest.mark.asyncio
    async def test_later_success_allows(self):
        await authorize(Or([deny("a"), deny("b"), allow()]), {})

    @pytest.mark.asyncio
    async def test_own_message_overrides_children(self):
        with pytest.raises(AuthorizationDenied, match="no access"):
            await authorize(Or([deny("a"), deny("b")], message="no access"), {})

    @pytest.mark.asyncio
    async def test_empty_allows(self):
        await authorize(Or([]), {})
        await authorize(Or([], message="unused"), {})


class TestNot:
    @pytest.mark.asyncio
    async def test_child_denial_allows(self):
        await authorize(Not(deny("child")), {})

    @pytest.mark.asyncio
    async def test_child_success_denies_with_default(self):
        with pytest.raises(AuthorizationDenied) as exc_info:
            await authorize(Not(allow("unused")), {})
        assert exc_info.value.message == "Unauthorized"

    @pytest.mark.asyncio
    async def test_child_success_denies_with_own_message(self):
        with pytest.raises(AuthorizationDenied, match="already signed in"):
            await authorize(Not(is_signed_in, message="already signed in"), {"user": 8})

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self):
        def broken(ctx):
            raise KeyError("post")

        with pytest.raises(KeyError):
            await authorize(Not(broken), {})


# =============================================================================
# Scenarios
# =============================================================================


class TestOwnerOrAdmin:
    """Or(And(is_signed_in, is_owner), is_admin)."""

    @pytest.fixture
    def policy(self):
        return Or([And([is_signed_in, is_owner]), is_admin])

    @pytest.mark.asyncio
    async def test_owner_allowed(self, policy):
        await authorize(policy, {"user": 8, "post": {"owner": 8}})

    @pytest.mark.asyncio
    async def test_admin_allowed(self, policy):
        await authorize(policy, {"user": 8, "post": {"owner": 4}, "admin": True})

    @pytest.mark.asyncio
    async def test_non_owner_gets_last_branch_message(self, policy):
        with pytest.raises(AuthorizationDenied) as exc_info:
            await authorize(policy, {"user": 8, "post": {"owner": 4}})
        assert exc_info.value.message == "you must be admin"

    @pytest.mark.asyncio
    async def test_branch_order_decides_message(self):
        policy = Or([is_admin, And([is_signed_in, is_owner])])
        with pytest.raises(AuthorizationDenied) as exc_info:
            await authorize(policy, {"user": 8, "post": {"owner": 4}})
        assert exc_info.value.message == "you must be owner"

    @pytest.mark.asyncio
    async def test_or_message_wins(self):
        policy = Or([And([is_signed_in, is_owner]), is_admin], message="cannot edit post")
        with pytest.raises(AuthorizationDenied, match="cannot edit post"):
            await authorize(policy, {"user": 8, "post": {"owner": 4}})


class TestContext:
    @pytest.mark.asyncio
    async def test_predicates_can_share_state_through_context(self):
        def load_user(ctx):
            ctx["user"] = {"id": 8, "roles": ["editor"]}

        def is_editor(ctx):
            return "editor" in ctx["user"]["roles"]

        ctx = {}
        await authorize(And([load_user, is_editor]), ctx)
        assert ctx["user"]["id"] == 8

    @pytest.mark.asyncio
    async def test_policy_is_reusable(self):
        policy = as_policy([is_signed_in, is_owner])
        await authorize(policy, {"user": 1, "post": {"owner": 1}})
        with pytest.raises(AuthorizationDenied):
            await authorize(policy, {"user": 2, "post": {"owner": 1}})
        await authorize(policy, {"user": 3, "post": {"owner": 3}})


# =============================================================================
# Shorthand coercion tests
# =============================================================================


class TestAsPolicy:
    def test_policy_returned_as_is(self):
        node = allow()
        assert as_policy(node) is node

    def test_callable_becomes_predicate(self):
        node = as_policy(is_admin)
        assert isinstance(node, Predicate)
        assert node.check is is_admin

    def test_list_becomes_and(self):
        node = as_policy([is_signed_in, is_owner])
        assert isinstance(node, And)
        assert len(node.children) == 2

    def test_mapping_forms(self):
        assert isinstance(as_policy({"and": [is_admin]}), And)
        assert isinstance(as_policy({"or": [is_admin]}), Or)
        node = as_policy({"not": is_admin, "message": "no admins"})
        assert isinstance(node, Not)
        assert node.message == "no admins"

    def test_string_resolves_registered_predicate(self):
        PredicateRegistry.register("isAdmin", is_admin)
        node = as_policy("isAdmin")
        assert node.name == "isAdmin"

    @pytest.mark.asyncio
    async def test_nested_shorthand(self):
        predicate("isSignedIn")(is_signed_in)
        predicate("isOwner")(is_owner)
        predicate("isAdmin")(is_admin)

        policy = {"or": [["isSignedIn", "isOwner"], "isAdmin"], "message": "cannot edit"}
        await authorize(policy, {"user": 8, "post": {"owner": 8}})
        with pytest.raises(AuthorizationDenied, match="cannot edit"):
            await authorize(policy, {"user": 8, "post": {"owner": 4}})


class TestMalformedPolicies:
    def test_unknown_operator(self):
        with pytest.raises(InvalidOperatorError) as exc_info:
            as_policy({"xor": [is_admin]})
        assert exc_info.value.operator == "xor"

    def test_missing_operator(self):
        with pytest.raises(MissingOperatorError):
            as_policy({"message": "denied"})

    def test_several_operators(self):
        with pytest.raises(PolicyConfigError, match="ambiguous"):
            as_policy({"and": [is_admin], "or": [is_owner]})

    def test_invalid_leaf(self):
        with pytest.raises(PolicyConfigError, match="invalid policy type: int"):
            as_policy([is_admin, 42])

    def test_children_must_be_a_list(self):
        with pytest.raises(PolicyConfigError):
            And(is_admin)

    def test_unregistered_name(self):
        with pytest.raises(ValueError, match="not registered"):
            as_policy("isWizard")

    @pytest.mark.asyncio
    async def test_malformed_policy_is_not_a_denial(self):
        check = AsyncMock(return_value=True)
        with pytest.raises(PolicyConfigError):
            await authorize({"and": [check], "bogus": 1}, {})
        check.assert_not_called()


class TestLogging:
    @pytest.mark.asyncio
    async def test_denial_logged_at_debug(self, caplog):
        caplog.set_level(logging.DEBUG, logger="policyforge.auth.policy")
        with pytest.raises(AuthorizationDenied):
            await authorize(deny("nope"), {})
        assert "Authorization denied: nope" in caplog.text
