"""CLI entry point for bindplane-aca, built on typer.

Provides ``generate`` (render manifests + ``deploy.sh``) and ``plan``
(show which manifests a capability profile selects and their deploy
order, without writing anything).

Usage::

    bindplane-aca --help
    bindplane-aca generate --config bindplane.yaml --output-dir out
    bindplane-aca plan --event-bus servicebus --no-deploy-prometheus
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional

import typer
from pydantic import ValidationError

from bindplane_aca import __version__, ui
from bindplane_aca.config.loader import build_record
from bindplane_aca.config.models import ConfigurationRecord, CredentialScheme, EventBus

app = typer.Typer(
    name="bindplane-aca",
    help=(
        "Render Bindplane manifests for Azure Container Apps and generate "
        "an ordered deploy.sh."
    ),
    no_args_is_help=True,
    add_completion=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"bindplane-aca {__version__}")
        raise typer.Exit()


@app.callback()
def _root_callback(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    """Bindplane on Azure Container Apps manifest generator."""


def _load_record(values: Dict[str, Any], config: Optional[str]) -> ConfigurationRecord:
    """Build the record or exit 1 with a readable message."""
    try:
        return build_record(values, config_path=config)
    except (FileNotFoundError, ValueError, ValidationError) as exc:
        # pydantic's ValidationError is a ValueError subclass
        ui.error_msg(str(exc))
        raise typer.Exit(1) from exc


# ── generate command ─────────────────────────────────────────────────────────


@app.command()
def generate(
    config: Optional[str] = typer.Option(
        None, "--config", help="YAML file with a 'bindplane_aca:' mapping of flag values.",
    ),
    aca_environment_id: Optional[str] = typer.Option(
        None, "--aca-environment-id", help="Azure Container Apps Environment ID (required)",
    ),
    postgres_host: Optional[str] = typer.Option(
        None, "--postgres-host", help="PostgreSQL hostname (required)",
    ),
    postgres_username: Optional[str] = typer.Option(
        None, "--postgres-username", help="PostgreSQL username (required)",
    ),
    postgres_database: Optional[str] = typer.Option(
        None, "--postgres-database", help="PostgreSQL database name (required)",
    ),
    postgres_password: Optional[str] = typer.Option(
        None, "--postgres-password",
        help="PostgreSQL password (required; or BINDPLANE_ACA_POSTGRES_PASSWORD)",
    ),
    postgres_ssl_mode: Optional[str] = typer.Option(
        None, "--postgres-ssl-mode", help="PostgreSQL sslmode (default: require)",
    ),
    license: Optional[str] = typer.Option(
        None, "--license", help="Bindplane license key (required; or BINDPLANE_ACA_LICENSE)",
    ),
    storage_account_name: Optional[str] = typer.Option(
        None, "--storage-account-name", help="Azure Storage Account name (required)",
    ),
    storage_account_key: Optional[str] = typer.Option(
        None, "--storage-account-key",
        help="Azure Storage Account key (required for shared-key credentials)",
    ),
    resource_group: Optional[str] = typer.Option(
        None, "--resource-group", help="Azure Resource Group name (required)",
    ),
    image_tag: Optional[str] = typer.Option(
        None, "--bindplane-tag", help="Bindplane image tag",
    ),
    session_secret: Optional[str] = typer.Option(
        None, "--session-secret",
        help="Bindplane session secret (required; or BINDPLANE_ACA_SESSION_SECRET)",
    ),
    remote_url: Optional[str] = typer.Option(
        None, "--remote-url", help="Remote URL advertised by Bindplane",
    ),
    event_bus: Optional[EventBus] = typer.Option(
        None, "--event-bus", help="Messaging backend: nats or servicebus",
    ),
    servicebus_connection_string: Optional[str] = typer.Option(
        None, "--servicebus-connection-string", help="Service Bus connection string",
    ),
    servicebus_namespace: Optional[str] = typer.Option(
        None, "--servicebus-namespace", help="Service Bus namespace (managed identity)",
    ),
    servicebus_topic: Optional[str] = typer.Option(
        None, "--servicebus-topic", help="Service Bus topic",
    ),
    servicebus_subscription_id: Optional[str] = typer.Option(
        None, "--servicebus-subscription-id", help="Service Bus subscription id",
    ),
    credential_scheme: Optional[CredentialScheme] = typer.Option(
        None, "--credential-scheme", help="shared-key or managed-identity",
    ),
    managed_identity_id: Optional[str] = typer.Option(
        None, "--managed-identity-id", help="User-assigned managed identity resource id",
    ),
    managed_identity_client_id: Optional[str] = typer.Option(
        None, "--managed-identity-client-id", help="Managed identity client id",
    ),
    deploy_prometheus: Optional[bool] = typer.Option(
        None, "--deploy-prometheus/--no-deploy-prometheus",
        help="Deploy the Prometheus monitoring component (default: yes)",
    ),
    deploy_collector: Optional[bool] = typer.Option(
        None, "--deploy-collector/--no-deploy-collector",
        help="Deploy the telemetry collector (default: no)",
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Output directory for generated files (default: out)",
    ),
    templates_dir: Optional[str] = typer.Option(
        None, "--templates-dir", help="Templates directory (default: bundled templates)",
    ),
    workers: int = typer.Option(
        1, "--workers", min=1, help="Render manifests concurrently with N threads.",
    ),
    debug: bool = typer.Option(
        False, "--debug", help="Enable debug logging.",
    ),
) -> None:
    """Render manifest templates and write deploy.sh.

    Exits 0 on success, 1 on validation or generation failure.

    Environment variables:
      BINDPLANE_ACA_LICENSE, BINDPLANE_ACA_POSTGRES_PASSWORD,
      BINDPLANE_ACA_STORAGE_ACCOUNT_KEY, BINDPLANE_ACA_SESSION_SECRET,
      BINDPLANE_ACA_SERVICEBUS_CONNECTION_STRING
    """
    values = dict(locals())
    for key in ("config", "workers", "debug"):
        values.pop(key)

    from bindplane_aca.workflow.generate import run_generate

    if debug:
        logging.basicConfig(level=logging.DEBUG)

    record = _load_record(values, config)
    raise typer.Exit(run_generate(record, workers=workers))


# ── plan command ─────────────────────────────────────────────────────────────


@app.command()
def plan(
    config: Optional[str] = typer.Option(
        None, "--config", help="YAML file with a 'bindplane_aca:' mapping of flag values.",
    ),
    event_bus: Optional[EventBus] = typer.Option(
        None, "--event-bus", help="Messaging backend: nats or servicebus",
    ),
    credential_scheme: Optional[CredentialScheme] = typer.Option(
        None, "--credential-scheme", help="shared-key or managed-identity",
    ),
    deploy_prometheus: Optional[bool] = typer.Option(
        None, "--deploy-prometheus/--no-deploy-prometheus",
        help="Include the Prometheus monitoring component",
    ),
    deploy_collector: Optional[bool] = typer.Option(
        None, "--deploy-collector/--no-deploy-collector",
        help="Include the telemetry collector",
    ),
    resource_group: Optional[str] = typer.Option(
        None, "--resource-group", help="Resource group used in the printed script",
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Output directory used in the printed script",
    ),
    show_script: bool = typer.Option(
        False, "--show-script", help="Print the deploy.sh that would be generated.",
    ),
) -> None:
    """Show the manifest plan and deploy order without writing files."""
    values = dict(locals())
    for key in ("config", "show_script"):
        values.pop(key)

    from bindplane_aca.deploy.composer import build_steps, compose
    from bindplane_aca.plan.manifests import build_manifest_plan, get_manifest

    record = _load_record(values, config)
    manifests = build_manifest_plan(record.capabilities)

    ui.phase("RENDER PLAN")
    for manifest_id in manifests:
        ui.detail(manifest_id, get_manifest(manifest_id).filename)

    ui.phase("DEPLOY ORDER")
    for step in build_steps(manifests, record):
        ui.step(step.label)
        if step.wait is not None:
            ui.info(f"waits for {step.wait.entity} ({step.wait.attempts} x {step.wait.delay_seconds}s)")

    if show_script:
        typer.echo(compose(manifests, record), nl=False)


# ── Entry point ──────────────────────────────────────────────────────────────


def main() -> int:
    """Run the CLI and return an exit code."""
    try:
        app()
        return 0
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 0


if __name__ == "__main__":
    sys.exit(main())
