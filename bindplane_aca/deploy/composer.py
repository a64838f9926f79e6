"""Deployment script composer: builds ``deploy.sh`` from a manifest plan.

The composer only reasons about *which* manifests are present; it never
reads rendered files.  Each present manifest becomes one
:class:`DeploymentStep` in dependency order (see
:func:`bindplane_aca.plan.manifests.deploy_order`).

Commands are built as argv tuples and serialised with :func:`shlex.quote`,
so operator-supplied values (resource group, storage keys, paths) reach
``az`` as single literal arguments and are never interpreted by the shell.
"""

from __future__ import annotations

import logging
import os
import posixpath
import shlex
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from bindplane_aca.config.models import ConfigurationRecord, CredentialScheme
from bindplane_aca.deploy.readiness import ReadinessWait
from bindplane_aca.errors import ScriptWriteError
from bindplane_aca.plan.manifests import (
    MONITORING,
    Manifest,
    ManifestKind,
    deploy_order,
    get_manifest,
)

logger = logging.getLogger(__name__)

#: Conventional script name, written next to the rendered manifests.
SCRIPT_NAME: str = "deploy.sh"

#: Environment storage backing the monitoring data volume.
MONITORING_STORAGE_NAME: str = "prometheus-data"

#: ``--query`` used by the final status listing.
STATUS_QUERY: str = "[].{Name:name,Status:properties.provisioningState}"


class ShellExpr(str):
    """An argument emitted as a double-quoted shell expression, not a literal.

    Only used for values the script must compute at deploy time, such as a
    storage key fetched with ``az storage account keys list``.
    """


Command = Tuple[str, ...]


@dataclass(frozen=True)
class DeploymentStep:
    """One unit of ``deploy.sh``: a progress label, commands, optional wait."""

    label: str
    manifest: Optional[str] = None
    commands: Tuple[Command, ...] = field(default_factory=tuple)
    wait: Optional[ReadinessWait] = None


# ── command construction ─────────────────────────────────────────────


def quote_arg(arg: str) -> str:
    """Quote one argv element for ``bash``."""
    if isinstance(arg, ShellExpr):
        return f'"{arg}"'
    return shlex.quote(arg)


def format_command(command: Sequence[str]) -> str:
    """Serialise an argv tuple into a single shell line."""
    return " ".join(quote_arg(a) for a in command)


def manifest_path(record: ConfigurationRecord, manifest: Manifest) -> str:
    """Path of the rendered manifest as seen from the script's working directory."""
    return posixpath.join(record.output_dir, manifest.filename)


def apply_command(manifest: Manifest, record: ConfigurationRecord) -> Command:
    """``az`` argv that creates the resource described by *manifest*."""
    path = manifest_path(record, manifest)
    rg = record.resource_group
    if manifest.kind == ManifestKind.JOB:
        return (
            "az", "containerapp", "job", "create",
            "--name", manifest.entity,
            "--resource-group", rg,
            "--yaml", path,
        )
    if manifest.kind == ManifestKind.SECRETS:
        return (
            "az", "containerapp", "env", "dapr-component", "set",
            "--name", record.environment_name,
            "--resource-group", rg,
            "--dapr-component-name", manifest.entity,
            "--yaml", path,
        )
    return (
        "az", "containerapp", "create",
        "--name", manifest.entity,
        "--resource-group", rg,
        "--yaml", path,
    )


def storage_key_arg(record: ConfigurationRecord) -> str:
    """Storage account key argument for the active credential scheme.

    Shared-key runs pass the configured key; managed-identity runs look the
    key up with the operator's ``az`` login when the script executes.
    """
    if record.credential_scheme == CredentialScheme.SHARED_KEY:
        return record.storage_account_key
    lookup = format_command((
        "az", "storage", "account", "keys", "list",
        "--account-name", record.storage_account_name,
        "--resource-group", record.resource_group,
        "--query", "[0].value",
        "--output", "tsv",
    ))
    return ShellExpr(f"$({lookup})")


def monitoring_storage_command(record: ConfigurationRecord) -> Command:
    """``az`` argv provisioning the Azure Files volume used by Prometheus."""
    return (
        "az", "containerapp", "env", "storage", "set",
        "--name", record.environment_name,
        "--resource-group", record.resource_group,
        "--storage-name", MONITORING_STORAGE_NAME,
        "--azure-file-account-name", record.storage_account_name,
        "--azure-file-account-key", storage_key_arg(record),
        "--azure-file-share-name", MONITORING_STORAGE_NAME,
        "--access-mode", "ReadWrite",
    )


def status_commands(record: ConfigurationRecord, plan: Sequence[str]) -> List[Command]:
    """Final listing commands; the container app listing always comes last."""
    rg = record.resource_group
    commands: List[Command] = []
    if any(get_manifest(m).kind == ManifestKind.JOB for m in plan):
        commands.append((
            "az", "containerapp", "job", "list",
            "--resource-group", rg,
            "--query", STATUS_QUERY,
            "--output", "table",
        ))
    commands.append((
        "az", "containerapp", "list",
        "--resource-group", rg,
        "--query", STATUS_QUERY,
        "--output", "table",
    ))
    return commands


# ── step construction ────────────────────────────────────────────────


def build_steps(plan: Sequence[str], record: ConfigurationRecord) -> List[DeploymentStep]:
    """Return one :class:`DeploymentStep` per manifest in dependency order."""
    steps: List[DeploymentStep] = []
    for index, manifest_id in enumerate(deploy_order(plan), start=1):
        manifest = get_manifest(manifest_id)
        commands: List[Command] = []
        if manifest_id == MONITORING:
            commands.append(monitoring_storage_command(record))
        commands.append(apply_command(manifest, record))

        wait = None
        if manifest.stateful and manifest.kind == ManifestKind.APP:
            wait = ReadinessWait(manifest.entity)

        steps.append(
            DeploymentStep(
                label=f"{index}. Deploying {manifest.label}...",
                manifest=manifest_id,
                commands=tuple(commands),
                wait=wait,
            )
        )
    return steps


def render_script(
    steps: Sequence[DeploymentStep],
    record: ConfigurationRecord,
    plan: Sequence[str],
) -> str:
    """Serialise *steps* into the text of ``deploy.sh``."""
    lines: List[str] = [
        "#!/bin/bash",
        "# Generated deployment commands for Bindplane Azure Container Apps",
        "",
        "set -e",
        "",
        'echo "Deploying Bindplane to Azure Container Apps..."',
        "",
        "# Deploy in order to ensure proper dependencies",
        "",
    ]
    for step in steps:
        lines.append(f"echo {shlex.quote(step.label)}")
        lines.extend(format_command(c) for c in step.commands)
        if step.wait is not None:
            lines.extend(step.wait.to_shell(record.resource_group))
        lines.append("")

    lines.append('echo "Deployment complete!"')
    lines.append("")
    lines.append('echo "Checking deployment status..."')
    lines.extend(format_command(c) for c in status_commands(record, plan))
    return "\n".join(lines) + "\n"


def compose(plan: Sequence[str], record: ConfigurationRecord) -> str:
    """Build the full ``deploy.sh`` text for *plan*.  Pure; performs no I/O."""
    return render_script(build_steps(plan, record), record, plan)


# ── output ───────────────────────────────────────────────────────────


def write_script(text: str, path: Union[str, Path]) -> Path:
    """Write *text* to *path*; raise :class:`ScriptWriteError` on failure."""
    dest = Path(path)
    try:
        dest.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ScriptWriteError(dest, str(exc)) from exc
    logger.info("Deployment script generated: %s", dest)
    return dest


def make_executable(path: Union[str, Path]) -> bool:
    """Best-effort ``chmod 0755``; failure is logged as a warning, not raised."""
    try:
        os.chmod(path, stat.S_IRWXU | stat.S_IRGRP | stat.S_IXGRP | stat.S_IROTH | stat.S_IXOTH)
    except OSError as exc:
        logger.warning("failed to make deployment script executable: %s", exc)
        return False
    return True
