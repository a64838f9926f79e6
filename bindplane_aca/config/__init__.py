"""Configuration records, capability profiles, and validation."""

from bindplane_aca.config.loader import (
    build_record,
    env_overrides,
    load_config_file,
    merge_config,
)
from bindplane_aca.config.models import (
    CapabilityProfile,
    ConfigurationRecord,
    CredentialScheme,
    EventBus,
    FLAG_NAMES,
    missing_fields,
    required_fields,
    validate_config,
)

__all__ = [
    "CapabilityProfile",
    "ConfigurationRecord",
    "CredentialScheme",
    "EventBus",
    "FLAG_NAMES",
    "build_record",
    "env_overrides",
    "load_config_file",
    "merge_config",
    "missing_fields",
    "required_fields",
    "validate_config",
]
