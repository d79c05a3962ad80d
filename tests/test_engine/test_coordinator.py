"""
Gasless Transaction Coordinator Test Suite

Covers the relay ready/error race:
- Immediate submission when the relay is already ready
- Single resolution when the relay becomes ready or fails later
- Relay payloads surfaced unchanged
- Listener cleanup and the optional readiness deadline

Usage:
    pytest tests/test_engine/test_coordinator.py -v
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from payment_mocks import (
    MOCK_ENCODED_CALL,
    MOCK_RSV,
    MOCK_TOKEN_ADDRESS,
    MOCK_USER_ADDRESS,
    FakeRelay,
    create_mock_tx_result,
)

from argo_payment.adapters.bases import ContractGateway
from argo_payment.engine.coordinator import GaslessTransactionCoordinator
from argo_payment.engine.exceptions import RelayError, RelayTimeoutError
from argo_payment.schemas.bases import RelayState


# ========================================================================
# Test Fixtures
# ========================================================================

@pytest.fixture
def relay_gateway():
    gateway = Mock(spec=ContractGateway)
    gateway.invoke = AsyncMock(return_value=create_mock_tx_result())
    return gateway


def submit(coordinator):
    return coordinator.submit_gasless_call(
        MOCK_USER_ADDRESS,
        MOCK_ENCODED_CALL,
        MOCK_TOKEN_ADDRESS,
        MOCK_RSV,
    )


# ========================================================================
# Test Classes
# ========================================================================

class TestReadyRelay:
    """Relay already READY at submission time."""

    @pytest.mark.asyncio
    async def test_submits_once_without_listeners(self, relay_gateway):
        relay = FakeRelay(state=RelayState.READY)
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        result = await submit(coordinator)

        assert result.tx_hash == create_mock_tx_result().tx_hash
        relay_gateway.invoke.assert_awaited_once()
        assert relay.subscriptions == {RelayState.READY: 0, RelayState.ERROR: 0}

    @pytest.mark.asyncio
    async def test_executes_meta_transaction_with_rsv(self, relay_gateway):
        coordinator = GaslessTransactionCoordinator(FakeRelay(state=RelayState.READY), relay_gateway)

        await submit(coordinator)

        contract, function_name, *args = relay_gateway.invoke.await_args.args
        assert contract.address == MOCK_TOKEN_ADDRESS
        assert function_name == "executeMetaTransaction"
        assert args == [MOCK_USER_ADDRESS, MOCK_ENCODED_CALL, MOCK_RSV.r, MOCK_RSV.s, MOCK_RSV.v]


class TestPendingRelay:
    """Relay NOT_READY at submission time."""

    @pytest.mark.asyncio
    async def test_registers_one_listener_of_each_kind(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)

        assert relay.subscriptions == {RelayState.READY: 1, RelayState.ERROR: 1}
        relay_gateway.invoke.assert_not_awaited()

        relay.emit_ready()
        await task

    @pytest.mark.asyncio
    async def test_ready_event_submits(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_ready()
        result = await task

        assert result.tx_hash == create_mock_tx_result().tx_hash
        relay_gateway.invoke.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ready_then_error_resolves_once(self, relay_gateway):
        """Both events in the same tick: the first one wins."""
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_ready()
        relay.emit_error("late failure")
        result = await task

        assert result is not None
        relay_gateway.invoke.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_error_then_ready_rejects_once(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_error("relay down")
        relay.emit_ready()

        with pytest.raises(RelayError):
            await task
        relay_gateway.invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_error_payload_is_preserved(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_error("relay down")

        with pytest.raises(RelayError) as exc_info:
            await task
        assert exc_info.value.payload == "relay down"
        assert str(exc_info.value) == "relay down"

    @pytest.mark.asyncio
    async def test_exception_payload_is_reraised_unchanged(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)
        failure = ConnectionError("relay unreachable")

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_error(failure)

        with pytest.raises(ConnectionError) as exc_info:
            await task
        assert exc_info.value is failure

    @pytest.mark.asyncio
    async def test_listeners_removed_after_resolution(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_ready()
        await task

        assert relay.listener_count(RelayState.READY) == 0
        assert relay.listener_count(RelayState.ERROR) == 0

    @pytest.mark.asyncio
    async def test_listeners_removed_after_error(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_error("relay down")
        with pytest.raises(RelayError):
            await task

        assert relay.listener_count(RelayState.READY) == 0
        assert relay.listener_count(RelayState.ERROR) == 0

    @pytest.mark.asyncio
    async def test_concurrent_submissions_are_independent(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        tasks = [asyncio.create_task(submit(coordinator)) for _ in range(3)]
        await asyncio.sleep(0)
        assert relay.listener_count(RelayState.READY) == 3

        relay.emit_ready()
        results = await asyncio.gather(*tasks)

        assert len(results) == 3
        assert relay_gateway.invoke.await_count == 3


class TestRelayTimeout:
    """Optional readiness deadline."""

    @pytest.mark.asyncio
    async def test_timeout_raises_and_cleans_up(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway, relay_timeout=0.01)

        with pytest.raises(RelayTimeoutError):
            await submit(coordinator)

        relay_gateway.invoke.assert_not_awaited()
        assert relay.listener_count(RelayState.READY) == 0
        assert relay.listener_count(RelayState.ERROR) == 0

    @pytest.mark.asyncio
    async def test_timeout_is_a_relay_error(self, relay_gateway):
        coordinator = GaslessTransactionCoordinator(FakeRelay(), relay_gateway, relay_timeout=0.01)

        with pytest.raises(RelayError):
            await submit(coordinator)

    @pytest.mark.asyncio
    async def test_ready_before_deadline_submits(self, relay_gateway):
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway, relay_timeout=5)

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_ready()
        await task

        relay_gateway.invoke.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_error_payload_is_not_a_deadline(self, relay_gateway):
        """A TimeoutError emitted by the relay is its payload, not our deadline."""
        relay = FakeRelay()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway, relay_timeout=5)
        failure = TimeoutError("upstream timed out")

        task = asyncio.create_task(submit(coordinator))
        await asyncio.sleep(0)
        relay.emit_error(failure)

        with pytest.raises(TimeoutError) as exc_info:
            await task
        assert exc_info.value is failure


class TestErroredRelay:
    """Relay already in ERROR at submission time."""

    @pytest.mark.asyncio
    async def test_stored_error_raised_without_waiting(self, relay_gateway):
        relay = FakeRelay()
        relay.emit_error("relay down")
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        with pytest.raises(RelayError) as exc_info:
            await asyncio.wait_for(submit(coordinator), timeout=1)

        assert exc_info.value.payload == "relay down"
        assert relay.subscriptions == {RelayState.READY: 0, RelayState.ERROR: 0}
        relay_gateway.invoke.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_stored_exception_reraised_unchanged(self, relay_gateway):
        relay = FakeRelay()
        failure = ConnectionError("relay unreachable")
        relay.emit_error(failure)
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        with pytest.raises(ConnectionError) as exc_info:
            await asyncio.wait_for(submit(coordinator), timeout=1)
        assert exc_info.value is failure

    @pytest.mark.asyncio
    async def test_error_state_without_payload(self, relay_gateway):
        coordinator = GaslessTransactionCoordinator(FakeRelay(state=RelayState.ERROR), relay_gateway)

        with pytest.raises(RelayError, match="ERROR state"):
            await asyncio.wait_for(submit(coordinator), timeout=1)

    @pytest.mark.asyncio
    async def test_recovered_relay_submits(self, relay_gateway):
        relay = FakeRelay()
        relay.emit_error("relay down")
        relay.emit_ready()
        coordinator = GaslessTransactionCoordinator(relay, relay_gateway)

        await submit(coordinator)

        relay_gateway.invoke.assert_awaited_once()
