"""Pydantic models for the Bindplane ACA generator configuration.

Defines:
- :class:`ConfigurationRecord` — the validated, immutable operator input
- :class:`CapabilityProfile` — which optional components and which
  credential scheme a run uses
- :func:`required_fields` / :func:`validate_config` — aggregated
  missing-field validation keyed by canonical flag name
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bindplane_aca.errors import ConfigValidationError

#: Image tag used when ``--bindplane-tag`` is not given.
DEFAULT_IMAGE_TAG: str = "1.94.3"

#: Remote URL advertised by the primary application by default.
DEFAULT_REMOTE_URL: str = "http://localhost:3001"

#: Default output directory for rendered manifests and ``deploy.sh``.
DEFAULT_OUTPUT_DIR: str = "out"


class CredentialScheme(str, Enum):
    """How workloads authenticate to storage and the message bus."""

    SHARED_KEY = "shared-key"
    MANAGED_IDENTITY = "managed-identity"


class EventBus(str, Enum):
    """Messaging backend used between Bindplane components."""

    NATS = "nats"
    SERVICE_BUS = "servicebus"


# ---------------------------------------------------------------------------
# Canonical flag names.  Validation errors always report these, never the
# Python attribute names.
# ---------------------------------------------------------------------------

FLAG_NAMES: Dict[str, str] = {
    "aca_environment_id": "aca-environment-id",
    "postgres_host": "postgres-host",
    "postgres_username": "postgres-username",
    "postgres_database": "postgres-database",
    "postgres_password": "postgres-password",
    "postgres_ssl_mode": "postgres-ssl-mode",
    "license": "license",
    "storage_account_name": "storage-account-name",
    "storage_account_key": "storage-account-key",
    "resource_group": "resource-group",
    "image_tag": "bindplane-tag",
    "session_secret": "session-secret",
    "remote_url": "remote-url",
    "event_bus": "event-bus",
    "servicebus_connection_string": "servicebus-connection-string",
    "servicebus_namespace": "servicebus-namespace",
    "servicebus_topic": "servicebus-topic",
    "servicebus_subscription_id": "servicebus-subscription-id",
    "credential_scheme": "credential-scheme",
    "managed_identity_id": "managed-identity-id",
    "managed_identity_client_id": "managed-identity-client-id",
    "deploy_prometheus": "deploy-prometheus",
    "deploy_collector": "deploy-collector",
    "output_dir": "output-dir",
    "templates_dir": "templates-dir",
}

#: Fields required regardless of capability profile.
BASE_REQUIRED_FIELDS: Tuple[str, ...] = (
    "aca_environment_id",
    "postgres_host",
    "postgres_username",
    "postgres_database",
    "postgres_password",
    "license",
    "storage_account_name",
    "resource_group",
    "session_secret",
)


@dataclass(frozen=True)
class CapabilityProfile:
    """Feature set of a single run, derived from a :class:`ConfigurationRecord`."""

    monitoring: bool = True
    stateful_messaging: bool = True
    collector: bool = False
    credential_scheme: CredentialScheme = CredentialScheme.SHARED_KEY


class ConfigurationRecord(BaseModel):
    """Operator-supplied configuration, immutable once constructed.

    Optional string values default to ``""``; ``None`` is coerced to ``""``
    so YAML ``null`` and unset CLI options behave the same way.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    aca_environment_id: str = ""
    postgres_host: str = ""
    postgres_username: str = ""
    postgres_database: str = ""
    postgres_password: str = ""
    postgres_ssl_mode: str = "require"
    license: str = ""
    storage_account_name: str = ""
    storage_account_key: str = ""
    resource_group: str = ""
    image_tag: str = DEFAULT_IMAGE_TAG
    session_secret: str = ""
    remote_url: str = DEFAULT_REMOTE_URL

    event_bus: EventBus = EventBus.NATS
    servicebus_connection_string: str = ""
    servicebus_namespace: str = ""
    servicebus_topic: str = ""
    servicebus_subscription_id: str = ""

    credential_scheme: CredentialScheme = CredentialScheme.SHARED_KEY
    managed_identity_id: str = ""
    managed_identity_client_id: str = ""

    deploy_prometheus: bool = True
    deploy_collector: bool = False

    output_dir: str = DEFAULT_OUTPUT_DIR
    templates_dir: Optional[str] = Field(default=None)

    @model_validator(mode="before")
    @classmethod
    def _coerce_none(cls, data: Any) -> Any:
        """Turn ``None`` into ``""`` for string fields that have a default."""
        if not isinstance(data, dict):
            return data
        out = dict(data)
        for key, value in data.items():
            if value is None and key not in ("templates_dir", "event_bus", "credential_scheme",
                                              "deploy_prometheus", "deploy_collector"):
                out[key] = ""
            elif value is None:
                out.pop(key)
        return out

    @property
    def capabilities(self) -> CapabilityProfile:
        """Return the :class:`CapabilityProfile` this record selects."""
        return CapabilityProfile(
            monitoring=self.deploy_prometheus,
            stateful_messaging=self.event_bus == EventBus.NATS,
            collector=self.deploy_collector,
            credential_scheme=self.credential_scheme,
        )

    @property
    def environment_name(self) -> str:
        """Last path segment of :attr:`aca_environment_id`.

        ``az containerapp env`` subcommands take the environment name, while
        manifests reference the full resource id.
        """
        return self.aca_environment_id.rstrip("/").rsplit("/", 1)[-1]


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def required_fields(record: ConfigurationRecord) -> List[Tuple[str, str]]:
    """Return ``(field, flag)`` pairs demanded by *record*'s capability profile."""
    fields: List[str] = list(BASE_REQUIRED_FIELDS)
    profile = record.capabilities

    if profile.credential_scheme == CredentialScheme.SHARED_KEY:
        fields.append("storage_account_key")
    else:
        fields.extend(["managed_identity_id", "managed_identity_client_id"])

    if record.event_bus == EventBus.SERVICE_BUS:
        fields.extend(["servicebus_topic", "servicebus_subscription_id"])
        if profile.credential_scheme == CredentialScheme.SHARED_KEY:
            fields.append("servicebus_connection_string")
        else:
            fields.append("servicebus_namespace")

    return [(name, FLAG_NAMES[name]) for name in fields]


def missing_fields(record: ConfigurationRecord) -> List[str]:
    """Return the flag names of every required field that is empty."""
    missing: List[str] = []
    for name, flag in required_fields(record):
        value = getattr(record, name)
        if not str(value).strip():
            missing.append(flag)
    return sorted(missing)


def validate_config(record: ConfigurationRecord) -> None:
    """Raise :class:`ConfigValidationError` listing every missing field.

    The check runs before any file is read or written.
    """
    missing = missing_fields(record)
    if missing:
        raise ConfigValidationError(missing)
