"""Tests for the service container."""

from __future__ import annotations

import pytest

from reply_pilot.core import ServiceContainer


def test_factories_run_once() -> None:
    container = ServiceContainer()
    calls: list[int] = []
    container.register("value", lambda c: calls.append(1) or len(calls))

    assert container.resolve("value") == 1
    assert container.resolve("value") == 1
    assert calls == [1]


def test_provide_replaces_registered_factory() -> None:
    container = ServiceContainer()
    container.register("transport", lambda c: "smtp")
    container.register("sender", lambda c: f"sender via {c.resolve('transport')}")

    container.provide("transport", "console")

    assert container.resolve("sender") == "sender via console"


def test_register_drops_cached_instance() -> None:
    container = ServiceContainer()
    container.register("value", lambda c: "first")
    assert container.resolve("value") == "first"

    container.register("value", lambda c: "second")

    assert container.resolve("value") == "second"


def test_resolve_as_checks_type() -> None:
    container = ServiceContainer()
    container.provide("number", 3)

    assert container.resolve_as("number", int) == 3
    with pytest.raises(TypeError):
        container.resolve_as("number", str)
    with pytest.raises(KeyError):
        container.resolve("missing")
