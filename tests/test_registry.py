"""Tests for the predicate registry."""

import logging

import pytest

from policyforge.auth import Predicate, PredicateRegistry, authorize, predicate
from policyforge.errors import AuthorizationDenied


@pytest.fixture(autouse=True)
def clear_predicate_registry():
    """Clear predicate registry before and after each test."""
    PredicateRegistry.clear()
    yield
    PredicateRegistry.clear()


class TestPredicateRegistry:
    def test_register_and_get(self):
        def is_admin(ctx):
            return ctx.get("admin", False)

        PredicateRegistry.register("isAdmin", is_admin)
        node = PredicateRegistry.get("isAdmin")
        assert isinstance(node, Predicate)
        assert node.check is is_admin
        assert node.name == "isAdmin"

    def test_register_idempotent(self):
        def first(ctx):
            return True

        def second(ctx):
            return False

        PredicateRegistry.register("p", first)
        PredicateRegistry.register("p", second)
        assert PredicateRegistry.get("p").check is first

    def test_get_unregistered_raises(self, caplog):
        caplog.set_level(logging.WARNING, logger="policyforge.auth.registry")
        with pytest.raises(ValueError, match="Predicate 'nope' is not registered"):
            PredicateRegistry.get("nope")
        assert "unregistered predicate 'nope'" in caplog.text

    def test_is_registered(self):
        assert not PredicateRegistry.is_registered("p")
        PredicateRegistry.register("p", lambda ctx: True)
        assert PredicateRegistry.is_registered("p")

    def test_list_registered_sorted(self):
        PredicateRegistry.register("b", lambda ctx: True)
        PredicateRegistry.register("a", lambda ctx: True)
        assert PredicateRegistry.list_registered() == ["a", "b"]

    def test_clear(self):
        PredicateRegistry.register("p", lambda ctx: True)
        PredicateRegistry.clear()
        assert PredicateRegistry.list_registered() == []


class TestPredicateDecorator:
    def test_returns_function(self):
        @predicate("isSignedIn")
        def is_signed_in(ctx):
            return ctx.get("user") is not None

        assert PredicateRegistry.get("isSignedIn").check is is_signed_in

    @pytest.mark.asyncio
    async def test_registered_message_used_on_denial(self):
        @predicate("isSignedIn", message="sign in first")
        async def is_signed_in(ctx):
            return ctx.get("user") is not None

        await authorize("isSignedIn", {"user": 1})
        with pytest.raises(AuthorizationDenied, match="sign in first"):
            await authorize("isSignedIn", {})
