"""Config file loading and layering.

Values reach a :class:`ConfigurationRecord` from three layers, lowest
precedence first:

1. an optional YAML file (``--config``) with a ``bindplane_aca:`` mapping
2. ``BINDPLANE_ACA_<FIELD>`` environment variables, for secrets only
3. explicit CLI flags

Keys in the YAML file may use either the flag spelling
(``postgres-host``) or the field spelling (``postgres_host``).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from bindplane_aca.config.models import FLAG_NAMES, ConfigurationRecord

logger = logging.getLogger(__name__)

#: Root key of the YAML config file.
CONFIG_ROOT_KEY: str = "bindplane_aca"

#: Prefix for environment-variable fallbacks.
ENV_PREFIX: str = "BINDPLANE_ACA_"

#: Fields that may be supplied through the environment instead of argv.
SECRET_ENV_FIELDS = (
    "license",
    "postgres_password",
    "storage_account_key",
    "session_secret",
    "servicebus_connection_string",
)

_FIELD_BY_FLAG: Dict[str, str] = {flag: name for name, flag in FLAG_NAMES.items()}


def normalize_key(key: str) -> str:
    """Map a flag or field spelling to the model field name.

    Raises :class:`ValueError` for keys the model does not know.
    """
    if key in FLAG_NAMES:
        return key
    if key in _FIELD_BY_FLAG:
        return _FIELD_BY_FLAG[key]
    candidate = key.replace("-", "_")
    if candidate in FLAG_NAMES:
        return candidate
    raise ValueError(f"Unknown configuration key: {key}")


def load_config_file(path: str | Path) -> Dict[str, Any]:
    """Parse a YAML config file into a ``{field: value}`` dict.

    A missing file is an error; an empty file yields ``{}``.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Config file {path} must contain a mapping")

    section = raw.get(CONFIG_ROOT_KEY, {}) or {}
    if not isinstance(section, dict):
        raise ValueError(f"'{CONFIG_ROOT_KEY}' in {path} must be a mapping")

    values: Dict[str, Any] = {}
    for key, val in section.items():
        values[normalize_key(str(key))] = val
    logger.debug("Loaded %d config value(s) from %s", len(values), path)
    return values


def env_overrides(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return secret values found in ``BINDPLANE_ACA_*`` environment variables."""
    env = os.environ if environ is None else environ
    found: Dict[str, str] = {}
    for name in SECRET_ENV_FIELDS:
        value = env.get(ENV_PREFIX + name.upper())
        if value:
            found[name] = value
    return found


def merge_config(*layers: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge *layers* left to right; ``None`` values never override."""
    merged: Dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            if value is None:
                continue
            merged[normalize_key(key)] = value
    return merged


def build_record(
    cli_values: Mapping[str, Any],
    *,
    config_path: Optional[str | Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ConfigurationRecord:
    """Layer file, environment, and CLI values into a :class:`ConfigurationRecord`.

    The record is **not** validated here; call
    :func:`bindplane_aca.config.models.validate_config` before rendering.
    """
    file_values: Dict[str, Any] = {}
    if config_path:
        file_values = load_config_file(config_path)
    merged = merge_config(file_values, env_overrides(environ), cli_values)
    return ConfigurationRecord(**merged)
