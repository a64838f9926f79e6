"""Deployment script composition and readiness waits."""

from bindplane_aca.deploy.composer import (
    SCRIPT_NAME,
    DeploymentStep,
    build_steps,
    compose,
    format_command,
    make_executable,
    write_script,
)
from bindplane_aca.deploy.readiness import (
    DEFAULT_ATTEMPTS,
    DEFAULT_DELAY_SECONDS,
    READY_STATE,
    ReadinessResult,
    ReadinessState,
    ReadinessWait,
)

__all__ = [
    "DEFAULT_ATTEMPTS",
    "DEFAULT_DELAY_SECONDS",
    "DeploymentStep",
    "READY_STATE",
    "ReadinessResult",
    "ReadinessState",
    "ReadinessWait",
    "SCRIPT_NAME",
    "build_steps",
    "compose",
    "format_command",
    "make_executable",
    "write_script",
]
