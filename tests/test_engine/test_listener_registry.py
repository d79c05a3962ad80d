"""
Test suite for the relay ListenerRegistry.
Tests: 1) Delivery per state 2) Unsubscribe semantics 3) Coroutine listeners
"""
import asyncio

import pytest
from unittest.mock import Mock

from argo_payment.engine.events import ListenerRegistry
from argo_payment.schemas.bases import RelayState


def test_subscribe_rejects_non_callable():
    registry = ListenerRegistry()
    with pytest.raises(TypeError):
        registry.subscribe(RelayState.READY, "not callable")


def test_emit_delivers_payload_to_matching_state_only():
    registry = ListenerRegistry()
    on_ready = Mock()
    on_error = Mock()
    registry.subscribe(RelayState.READY, on_ready)
    registry.subscribe(RelayState.ERROR, on_error)

    registry.emit(RelayState.ERROR, "relay down")

    on_error.assert_called_once_with("relay down")
    on_ready.assert_not_called()


def test_emit_preserves_subscription_order():
    registry = ListenerRegistry()
    order = []
    registry.subscribe(RelayState.READY, lambda: order.append("first"))
    registry.subscribe(RelayState.READY, lambda: order.append("second"))

    registry.emit(RelayState.READY)

    assert order == ["first", "second"]


def test_unsubscribe_removes_listener_from_every_state():
    registry = ListenerRegistry()
    listener = Mock()
    registry.subscribe(RelayState.READY, listener)
    registry.subscribe(RelayState.ERROR, listener)

    registry.unsubscribe(listener)

    assert registry.listeners(RelayState.READY) == []
    assert registry.listeners(RelayState.ERROR) == []


def test_unsubscribe_unknown_listener_is_noop():
    registry = ListenerRegistry()
    registry.unsubscribe(Mock())
    assert registry.listeners(RelayState.READY) == []


def test_listener_may_unsubscribe_during_emit():
    registry = ListenerRegistry()
    later = Mock()

    def first():
        registry.unsubscribe(first)
        registry.unsubscribe(later)

    registry.subscribe(RelayState.READY, first)
    registry.subscribe(RelayState.READY, later)

    registry.emit(RelayState.READY)

    # Delivery works on a snapshot taken before the event
    later.assert_called_once_with()
    assert registry.listeners(RelayState.READY) == []


def test_listeners_returns_copy():
    registry = ListenerRegistry()
    registry.subscribe(RelayState.READY, Mock())

    registry.listeners(RelayState.READY).clear()

    assert len(registry.listeners(RelayState.READY)) == 1


@pytest.mark.asyncio
async def test_coroutine_listener_is_scheduled():
    registry = ListenerRegistry()
    received = asyncio.Event()

    async def listener(payload):
        assert payload == "relay down"
        received.set()

    registry.subscribe(RelayState.ERROR, listener)
    registry.emit(RelayState.ERROR, "relay down")

    await asyncio.wait_for(received.wait(), timeout=1)


def test_failing_listener_does_not_stop_delivery(caplog):
    registry = ListenerRegistry()
    later = Mock()
    registry.subscribe(RelayState.READY, lambda: 1 / 0)
    registry.subscribe(RelayState.READY, later)

    with caplog.at_level("ERROR", logger="argo_payment.engine.events"):
        registry.emit(RelayState.READY)

    later.assert_called_once_with()
    assert "failed on ready event" in caplog.text
    assert "ZeroDivisionError" in caplog.text
