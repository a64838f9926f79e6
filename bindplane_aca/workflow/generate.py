"""Orchestrator for manifest generation.

Execution model, evaluated over one :class:`ConfigurationRecord`:

1. **Validate** — aggregated missing-field check; no I/O on failure.
2. **Render** — VariableSet → ManifestPlan → one output file per manifest.
3. **Compose** — ``deploy.sh`` from the plan, then a best-effort chmod.

The first failure aborts the run.  Files already written are left in
place; recovery is re-running after fixing the cause.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from bindplane_aca import ui
from bindplane_aca.config.models import ConfigurationRecord, validate_config
from bindplane_aca.deploy.composer import SCRIPT_NAME, compose, make_executable, write_script
from bindplane_aca.errors import (
    BindplaneACAError,
    ConfigValidationError,
    RenderError,
    ScriptWriteError,
)
from bindplane_aca.plan.manifests import build_manifest_plan
from bindplane_aca.render.renderer import render
from bindplane_aca.render.variables import build_variable_set

logger = logging.getLogger(__name__)

# Exit codes
EXIT_SUCCESS = 0
EXIT_VALIDATION_FAILURE = 1
EXIT_GENERATION_FAILURE = 1


@dataclass
class GenerateOutcome:
    """Artifacts produced by :func:`generate`."""

    plan: Tuple[str, ...]
    output_dir: Path
    rendered: List[Path] = field(default_factory=list)
    script_path: Optional[Path] = None
    executable: bool = False


def generate(record: ConfigurationRecord, *, workers: int = 1) -> GenerateOutcome:
    """Validate *record*, render its manifests, and write ``deploy.sh``.

    Raises:
        ConfigValidationError: Required fields are missing (nothing written).
        RenderError: A manifest failed to render.
        ScriptWriteError: ``deploy.sh`` could not be written.
    """
    validate_config(record)

    variables = build_variable_set(record)
    plan = build_manifest_plan(record.capabilities)
    logger.debug("Manifest plan: %s", ", ".join(plan))

    result = render(plan, variables, record.templates_dir, record.output_dir, workers=workers)
    outcome = GenerateOutcome(
        plan=plan,
        output_dir=result.output_dir,
        rendered=result.output_paths,
    )

    script = compose(result.manifests, record)
    outcome.script_path = write_script(script, result.output_dir / SCRIPT_NAME)
    outcome.executable = make_executable(outcome.script_path)
    return outcome


def run_generate(record: ConfigurationRecord, *, workers: int = 1) -> int:
    """CLI-facing wrapper around :func:`generate`; returns an ``EXIT_*`` code."""
    ui.phase("GENERATE")
    try:
        outcome = generate(record, workers=workers)
    except ConfigValidationError as exc:
        ui.error_msg(str(exc))
        return EXIT_VALIDATION_FAILURE
    except RenderError as exc:
        ui.fail(f"{exc.template or 'output'}: rendering failed")
        ui.error_panel(
            "Error processing templates",
            f"{exc}\n\nFiles already written to {record.output_dir} were kept.",
        )
        return EXIT_GENERATION_FAILURE
    except ScriptWriteError as exc:
        ui.error_msg(str(exc))
        ui.info("Rendered manifests were kept; re-run once the output directory is writable.")
        return EXIT_GENERATION_FAILURE
    except BindplaneACAError as exc:
        ui.error_msg(str(exc))
        return EXIT_GENERATION_FAILURE

    for path in outcome.rendered:
        ui.ok(f"Generated: {path}")
    if outcome.script_path is not None:
        ui.ok(f"Deployment script generated: {outcome.script_path}")
    if not outcome.executable:
        ui.warn("Could not mark deploy.sh executable; run it with 'bash deploy.sh'.")

    ui.success_panel(
        "Templates processed",
        f"Output files generated in: {outcome.output_dir}\n"
        f"Deploy with: {outcome.script_path}",
    )
    return EXIT_SUCCESS
