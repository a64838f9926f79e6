"""Template variable derivation.

:func:`build_variable_set` is a pure function of a
:class:`ConfigurationRecord`.  Identifiers and hostnames pass through
verbatim and as double-quoted YAML scalars (the ``Yaml`` forms); secret
material is also exposed base64-encoded for manifests that expect
pre-encoded values.  A few derived names are flow-style YAML fragments
that switch on the credential scheme.
"""

from __future__ import annotations

import base64
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping

import yaml

from bindplane_aca.config.models import ConfigurationRecord, CredentialScheme

VariableSet = Mapping[str, str]

#: Template variables carried through verbatim, keyed to record fields.
PLAIN_VARIABLES: Dict[str, str] = {
    "ACAEnvironmentID": "aca_environment_id",
    "PostgresHost": "postgres_host",
    "PostgresUsername": "postgres_username",
    "PostgresDatabase": "postgres_database",
    "PostgresSSLMode": "postgres_ssl_mode",
    "ResourceGroup": "resource_group",
    "BindplaneTag": "image_tag",
    "SessionSecret": "session_secret",
    "BindplaneRemoteURL": "remote_url",
    "StorageAccountName": "storage_account_name",
    "ServiceBusNamespace": "servicebus_namespace",
    "ServiceBusTopic": "servicebus_topic",
    "ServiceBusSubscriptionID": "servicebus_subscription_id",
    "ManagedIdentityID": "managed_identity_id",
    "ManagedIdentityClientID": "managed_identity_client_id",
    # Plaintext secrets for container-app `configuration.secrets` values.
    "License": "license",
    "PostgresPassword": "postgres_password",
    "StorageAccountKey": "storage_account_key",
    "ServiceBusConnectionString": "servicebus_connection_string",
}

#: Template variables holding base64 of a record field.
ENCODED_VARIABLES: Dict[str, str] = {
    "Base64License": "license",
    "Base64PostgresPassword": "postgres_password",
    "Base64StorageAccountName": "storage_account_name",
    "Base64StorageAccountKey": "storage_account_key",
    "Base64SessionSecret": "session_secret",
    "Base64ServiceBusConnectionString": "servicebus_connection_string",
}

#: YAML-quoted form of every plain variable.  Templates use these wherever a
#: value fills a whole scalar, so passwords like ``*x`` or ``a: b`` and
#: numeric-looking strings load back as the exact original string.
QUOTED_VARIABLES: Dict[str, str] = {
    f"Yaml{name}": field for name, field in PLAIN_VARIABLES.items()
}

#: Variables computed from the record rather than copied from one field.
#: ``Identity``, ``StorageAuthMetadata`` and ``StorageSecrets`` are flow-style
#: YAML fragments that differ between credential schemes.
DERIVED_VARIABLES: FrozenSet[str] = frozenset(
    {
        "ACAEnvironmentName",
        "EventBusType",
        "PrometheusEnabled",
        "Identity",
        "StorageAuthMetadata",
        "StorageSecrets",
    }
)

ALL_VARIABLES: FrozenSet[str] = (
    frozenset(PLAIN_VARIABLES)
    | frozenset(QUOTED_VARIABLES)
    | frozenset(ENCODED_VARIABLES)
    | DERIVED_VARIABLES
)

#: Secret name holding the storage account key in the secrets manifest.
STORAGE_KEY_SECRET: str = "storage-account-key"


def encode_secret(value: str) -> str:
    """Standard base64 of the UTF-8 bytes of *value*.

    ``surrogatepass`` lets any Python ``str`` (lone surrogates included)
    survive the trip through :func:`decode_secret`.
    """
    return base64.b64encode(value.encode("utf-8", "surrogatepass")).decode("ascii")


def decode_secret(encoded: str) -> str:
    """Inverse of :func:`encode_secret`."""
    return base64.b64decode(encoded, validate=True).decode("utf-8", "surrogatepass")


def _dump_inline(data: Any, **kwargs: Any) -> str:
    text = yaml.safe_dump(data, allow_unicode=True, width=float("inf"), **kwargs)
    text = text.rstrip("\n")
    if text.endswith("\n..."):
        text = text[: -len("\n...")]
    return text


def yaml_scalar(value: str) -> str:
    """Double-quoted YAML scalar that loads back as exactly *value*."""
    return _dump_inline(value, default_style='"')


def yaml_flow(data: Any) -> str:
    """Single-line flow-style YAML for *data*."""
    return _dump_inline(data, default_flow_style=True)


def identity_fragment(record: ConfigurationRecord) -> str:
    """``identity:`` value for container apps and jobs.

    Managed-identity runs attach the user-assigned identity; shared-key
    runs declare no identity.
    """
    if record.credential_scheme == CredentialScheme.MANAGED_IDENTITY:
        return yaml_flow(
            {
                "type": "UserAssigned",
                "userAssignedIdentities": {record.managed_identity_id: {}},
            }
        )
    return yaml_flow({"type": "None"})


def storage_auth_fragments(record: ConfigurationRecord) -> Dict[str, str]:
    """Storage credential metadata entry and secrets list for the secrets manifest."""
    if record.credential_scheme == CredentialScheme.MANAGED_IDENTITY:
        return {
            "StorageAuthMetadata": yaml_flow(
                {"name": "azureClientId", "value": record.managed_identity_client_id}
            ),
            "StorageSecrets": yaml_flow([]),
        }
    return {
        "StorageAuthMetadata": yaml_flow(
            {"name": "accountKey", "secretRef": STORAGE_KEY_SECRET}
        ),
        "StorageSecrets": yaml_flow(
            [{"name": STORAGE_KEY_SECRET, "value": record.storage_account_key}]
        ),
    }


def build_variable_set(record: ConfigurationRecord) -> VariableSet:
    """Derive the read-only template variable mapping for *record*."""
    values: Dict[str, str] = {}
    for name, field in PLAIN_VARIABLES.items():
        values[name] = str(getattr(record, field))
    for name, field in QUOTED_VARIABLES.items():
        values[name] = yaml_scalar(str(getattr(record, field)))
    for name, field in ENCODED_VARIABLES.items():
        values[name] = encode_secret(getattr(record, field))
    values["ACAEnvironmentName"] = record.environment_name
    values["EventBusType"] = record.event_bus.value
    values["PrometheusEnabled"] = "true" if record.deploy_prometheus else "false"
    values["Identity"] = identity_fragment(record)
    values.update(storage_auth_fragments(record))
    return MappingProxyType(values)
