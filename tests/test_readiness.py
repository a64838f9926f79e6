"""Tests for bindplane_aca.deploy.readiness: the readiness wait state machine."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from bindplane_aca.deploy.readiness import (
    DEFAULT_ATTEMPTS,
    DEFAULT_DELAY_SECONDS,
    READY_STATE,
    ReadinessState,
    ReadinessTracker,
    ReadinessWait,
)


def _noop_sleep(_: float) -> None:
    """Replacement for time.sleep in tests."""


class TestConstants:
    def test_defaults(self):
        assert DEFAULT_ATTEMPTS == 60
        assert DEFAULT_DELAY_SECONDS == 5
        assert READY_STATE == "Succeeded"


class TestReadinessTracker:
    def test_pending_to_ready(self):
        t = ReadinessTracker(max_attempts=3)
        assert t.record("InProgress") == ReadinessState.PENDING
        assert t.record(READY_STATE) == ReadinessState.READY
        assert t.attempts == 2

    def test_pending_to_timed_out(self):
        t = ReadinessTracker(max_attempts=2)
        assert t.record(None) == ReadinessState.PENDING
        assert t.record("InProgress") == ReadinessState.TIMED_OUT

    def test_ready_on_last_attempt(self):
        t = ReadinessTracker(max_attempts=1)
        assert t.record(READY_STATE) == ReadinessState.READY

    def test_terminal_states_sticky(self):
        t = ReadinessTracker(max_attempts=1)
        t.record(None)
        assert t.record(READY_STATE) == ReadinessState.TIMED_OUT
        assert t.attempts == 1


class TestPoll:
    def test_ready_after_retries(self):
        probe = MagicMock(side_effect=["InProgress", None, READY_STATE])
        sleep = MagicMock()
        result = ReadinessWait("bindplane-nats", attempts=5, delay_seconds=2).poll(
            probe, _sleep_fn=sleep,
        )
        assert result.success
        assert result.state == ReadinessState.READY
        assert result.attempts == 3
        assert result.last_probe == READY_STATE
        probe.assert_called_with("bindplane-nats")
        assert sleep.call_count == 2
        sleep.assert_called_with(2)

    def test_times_out(self):
        probe = MagicMock(return_value="InProgress")
        result = ReadinessWait("x", attempts=4).poll(probe, _sleep_fn=_noop_sleep)
        assert not result.success
        assert result.state == ReadinessState.TIMED_OUT
        assert result.attempts == 4
        assert probe.call_count == 4

    def test_no_sleep_after_final_attempt(self):
        sleep = MagicMock()
        ReadinessWait("x", attempts=3).poll(lambda _: None, _sleep_fn=sleep)
        assert sleep.call_count == 2

    def test_invalid_attempts(self):
        with pytest.raises(ValueError):
            ReadinessWait("x", attempts=0)

    def test_invalid_delay(self):
        with pytest.raises(ValueError):
            ReadinessWait("x", delay_seconds=-1)


class TestToShell:
    def test_loop_bounds(self):
        lines = ReadinessWait("bindplane-nats").to_shell("rg1")
        text = "\n".join(lines)
        assert "for attempt in $(seq 1 60); do" in text
        assert "sleep 5" in text
        assert 'if [ "$attempt" -eq 60 ]; then' in text
        assert "exit 1" in text
        assert lines[-1] == "done"

    def test_probe_command(self):
        text = "\n".join(ReadinessWait("bindplane").to_shell("rg1"))
        assert (
            "az containerapp show --name bindplane --resource-group rg1 "
            "--query properties.provisioningState --output tsv"
        ) in text
        assert f'"$state" = "{READY_STATE}"' in text

    def test_custom_bounds(self):
        text = "\n".join(ReadinessWait("x", attempts=3, delay_seconds=10).to_shell("rg"))
        assert "seq 1 3" in text
        assert "sleep 10" in text

    def test_resource_group_quoted(self):
        text = "\n".join(ReadinessWait("x").to_shell("rg; rm -rf /"))
        assert "--resource-group 'rg; rm -rf /'" in text
