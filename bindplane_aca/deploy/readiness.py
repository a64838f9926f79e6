"""Readiness waits for deployed container apps.

A wait is a small state machine::

    PENDING --probe reports Succeeded--> READY
    PENDING --attempt budget exhausted--> TIMED_OUT

:meth:`ReadinessWait.to_shell` emits it as a bounded ``for`` loop inside
``deploy.sh``; :meth:`ReadinessWait.poll` runs the same machine in-process
against an injected probe.  The generator itself never sleeps.
"""

from __future__ import annotations

import logging
import shlex
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

logger = logging.getLogger(__name__)

#: ``provisioningState`` reported by a container app that finished deploying.
READY_STATE: str = "Succeeded"

#: Default number of probes before giving up.
DEFAULT_ATTEMPTS: int = 60

#: Default seconds between probes.
DEFAULT_DELAY_SECONDS: int = 5


class ReadinessState(str, Enum):
    """State of a single readiness wait."""

    PENDING = "PENDING"
    READY = "READY"
    TIMED_OUT = "TIMED_OUT"


@dataclass
class ReadinessTracker:
    """Transition bookkeeping shared by the shell and in-process forms."""

    max_attempts: int
    attempts: int = 0
    state: ReadinessState = ReadinessState.PENDING

    def record(self, probe_state: Optional[str]) -> ReadinessState:
        """Feed one probe result and return the new state."""
        if self.state != ReadinessState.PENDING:
            return self.state
        self.attempts += 1
        if probe_state == READY_STATE:
            self.state = ReadinessState.READY
        elif self.attempts >= self.max_attempts:
            self.state = ReadinessState.TIMED_OUT
        return self.state


@dataclass(frozen=True)
class ReadinessResult:
    """Outcome of :meth:`ReadinessWait.poll`."""

    entity: str
    state: ReadinessState
    attempts: int
    last_probe: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state == ReadinessState.READY


@dataclass(frozen=True)
class ReadinessWait:
    """Wait until container app *entity* reports ``Succeeded``."""

    entity: str
    attempts: int = DEFAULT_ATTEMPTS
    delay_seconds: int = DEFAULT_DELAY_SECONDS

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")

    def probe_command(self, resource_group: str) -> Tuple[str, ...]:
        """``az`` argv that prints the app's provisioning state."""
        return (
            "az", "containerapp", "show",
            "--name", self.entity,
            "--resource-group", resource_group,
            "--query", "properties.provisioningState",
            "--output", "tsv",
        )

    def to_shell(self, resource_group: str) -> List[str]:
        """Render the wait as ``bash`` lines; timing out exits the script with 1."""
        entity = shlex.quote(self.entity)
        probe = shlex.join(self.probe_command(resource_group))
        return [
            f"echo {shlex.quote(f'Waiting for {self.entity} to become ready...')}",
            f"for attempt in $(seq 1 {self.attempts}); do",
            f"  state=$({probe} 2>/dev/null || true)",
            f'  if [ "$state" = "{READY_STATE}" ]; then',
            f"    echo {entity} is ready",
            "    break",
            "  fi",
            f'  if [ "$attempt" -eq {self.attempts} ]; then',
            f"    echo Timed out waiting for {entity} >&2",
            "    exit 1",
            "  fi",
            f"  sleep {self.delay_seconds}",
            "done",
        ]

    def poll(
        self,
        probe: Callable[[str], Optional[str]],
        *,
        _sleep_fn: Any = None,
    ) -> ReadinessResult:
        """Run the wait in-process.

        *probe* receives the entity name and returns its provisioning state
        (or ``None`` when it cannot be read).  The *_sleep_fn* parameter is
        for test injection (avoids real sleeps).
        """
        sleep = _sleep_fn or time.sleep
        tracker = ReadinessTracker(max_attempts=self.attempts)
        last: Optional[str] = None

        while tracker.state == ReadinessState.PENDING:
            last = probe(self.entity)
            state = tracker.record(last)
            if state == ReadinessState.PENDING:
                logger.info(
                    "%s not ready (state=%s, attempt %d/%d)",
                    self.entity, last, tracker.attempts, self.attempts,
                )
                sleep(self.delay_seconds)

        if tracker.state == ReadinessState.TIMED_OUT:
            logger.warning(
                "Timed out waiting for %s after %d attempts", self.entity, tracker.attempts,
            )
        return ReadinessResult(
            entity=self.entity,
            state=tracker.state,
            attempts=tracker.attempts,
            last_probe=last,
        )
