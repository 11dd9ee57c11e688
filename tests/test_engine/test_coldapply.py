"""Tests for the cold-apply orchestrator."""

import pytest
from unittest.mock import AsyncMock, MagicMock, call

from pvedsc.engine.coldapply import ApplyResult, ColdApplyOrchestrator
from pvedsc.errors import CommandFailure
from pvedsc.models.resource import PowerState, ReconciliationAction, ResourceKind


def make_provider(*states):
    """Provider mock whose power state reads return ``states`` in order."""
    provider = MagicMock()
    provider.label = "LXC"
    provider.power_state = AsyncMock(side_effect=list(states))
    provider.shutdown = AsyncMock()
    provider.stop = AsyncMock()
    provider.apply = AsyncMock()
    provider.start = AsyncMock()
    return provider


@pytest.fixture
def action():
    return ReconciliationAction(
        target_id=100,
        kind=ResourceKind.CONTAINER,
        attribute="memory",
        old=512,
        new=1024,
        args=["--memory", "1024"],
    )


@pytest.mark.asyncio
class TestColdApply:

    async def test_running_resource(self, action):
        provider = make_provider(PowerState.RUNNING, PowerState.STOPPED)

        assert await ColdApplyOrchestrator().apply(action, provider) == ApplyResult.APPLIED

        provider.shutdown.assert_awaited_once_with(100)
        provider.stop.assert_not_awaited()
        provider.apply.assert_awaited_once_with(action)
        provider.start.assert_awaited_once_with(100)

    async def test_already_stopped_skips_stop_phase(self, action):
        provider = make_provider(PowerState.STOPPED)

        assert await ColdApplyOrchestrator().apply(action, provider) == ApplyResult.APPLIED

        provider.shutdown.assert_not_awaited()
        provider.start.assert_awaited_once_with(100)

    async def test_forced_stop_when_graceful_does_not_stop(self, action):
        provider = make_provider(PowerState.RUNNING, PowerState.RUNNING, PowerState.STOPPED)

        assert await ColdApplyOrchestrator().apply(action, provider) == ApplyResult.APPLIED

        provider.stop.assert_awaited_once_with(100)
        provider.apply.assert_awaited_once()

    async def test_forced_stop_when_graceful_fails(self, action):
        provider = make_provider(PowerState.RUNNING, PowerState.STOPPED, PowerState.STOPPED)
        provider.shutdown.side_effect = CommandFailure(["pct", "shutdown", "100"], 255, stderr="timeout")

        assert await ColdApplyOrchestrator().apply(action, provider) == ApplyResult.APPLIED

        provider.stop.assert_awaited_once_with(100)

    async def test_abort_when_still_running(self, action, caplog):
        provider = make_provider(PowerState.RUNNING, PowerState.RUNNING, PowerState.RUNNING)

        assert await ColdApplyOrchestrator().apply(action, provider) == ApplyResult.STOP_FAILED

        provider.apply.assert_not_awaited()
        provider.start.assert_not_awaited()
        assert "still running" in caplog.text

    async def test_start_after_failed_apply(self, action, caplog):
        provider = make_provider(PowerState.STOPPED)
        provider.apply.side_effect = CommandFailure(["pct", "set", "100"], 255, stderr="bad value")

        assert await ColdApplyOrchestrator().apply(action, provider) == ApplyResult.FAILED

        provider.start.assert_awaited_once_with(100)
        assert any(r.levelname == "ERROR" and "memory" in r.message for r in caplog.records)

    async def test_start_failure_is_warning(self, action, caplog):
        provider = make_provider(PowerState.STOPPED)
        provider.start.side_effect = CommandFailure(["pct", "start", "100"], 255, stderr="no")

        assert await ColdApplyOrchestrator().apply(action, provider) == ApplyResult.START_FAILED

        assert any(r.levelname == "WARNING" and "Could not start" in r.message for r in caplog.records)

    async def test_dry_run_does_not_wait_for_stop(self, action):
        provider = make_provider(PowerState.RUNNING)

        assert await ColdApplyOrchestrator(dry_run=True).apply(action, provider) == ApplyResult.APPLIED

        assert provider.method_calls[-3:] == [
            call.shutdown(100),
            call.apply(action),
            call.start(100),
        ]
        provider.stop.assert_not_awaited()

    async def test_hot_action_skips_power_cycle(self, action):
        provider = make_provider()
        hot = action.model_copy(update={"cold": False})

        assert await ColdApplyOrchestrator().apply(hot, provider) == ApplyResult.APPLIED

        provider.power_state.assert_not_awaited()
        provider.start.assert_not_awaited()
        provider.apply.assert_awaited_once_with(hot)

    async def test_failed_apply_and_start_reports_power_failure(self, action):
        provider = make_provider(PowerState.STOPPED)
        provider.apply.side_effect = CommandFailure(["pct", "set", "100"], 255, stderr="bad value")
        provider.start.side_effect = CommandFailure(["pct", "start", "100"], 255, stderr="no")

        result = await ColdApplyOrchestrator().apply(action, provider)

        assert result == ApplyResult.START_FAILED
        assert result.power_failed
        assert not ApplyResult.FAILED.power_failed
