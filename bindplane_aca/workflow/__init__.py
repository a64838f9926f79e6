"""Generation workflow (validate, render, compose)."""

from bindplane_aca.workflow.generate import (
    EXIT_GENERATION_FAILURE,
    EXIT_SUCCESS,
    EXIT_VALIDATION_FAILURE,
    GenerateOutcome,
    generate,
    run_generate,
)

__all__ = [
    "EXIT_GENERATION_FAILURE",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_FAILURE",
    "GenerateOutcome",
    "generate",
    "run_generate",
]
