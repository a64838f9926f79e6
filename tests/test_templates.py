"""Tests for the bundled manifest templates."""

from __future__ import annotations

import pytest
import yaml

from bindplane_aca.config.models import ConfigurationRecord, CredentialScheme
from bindplane_aca.plan.manifests import MANIFESTS
from bindplane_aca.render.renderer import BUNDLED_TEMPLATES_DIR, parse_template, render_template
from bindplane_aca.render.variables import ALL_VARIABLES, build_variable_set

FILENAMES = sorted(m.filename for m in MANIFESTS.values())

RECORD = ConfigurationRecord(
    aca_environment_id="/subscriptions/s/resourceGroups/rg/providers/Microsoft.App/managedEnvironments/env1",
    postgres_host="db.example.com",
    postgres_username="bp",
    postgres_database="bindplane",
    postgres_password="pw",
    license="lic",
    storage_account_name="acct",
    storage_account_key="key",
    resource_group="rg",
    session_secret="secret",
)


def test_every_manifest_has_a_template():
    present = sorted(p.name for p in BUNDLED_TEMPLATES_DIR.glob("*.yaml"))
    assert present == FILENAMES


@pytest.mark.parametrize("filename", FILENAMES)
def test_template_uses_known_variables(filename):
    text = (BUNDLED_TEMPLATES_DIR / filename).read_text(encoding="utf-8")
    tpl = parse_template(filename, text)
    assert set(tpl.variables) <= set(ALL_VARIABLES)


@pytest.mark.parametrize("filename", FILENAMES)
def test_rendered_template_is_yaml(filename):
    text = (BUNDLED_TEMPLATES_DIR / filename).read_text(encoding="utf-8")
    rendered = render_template(text, build_variable_set(RECORD), name=filename)
    doc = yaml.safe_load(rendered)
    assert isinstance(doc, dict)


def test_primary_application_references_tag():
    text = (BUNDLED_TEMPLATES_DIR / "bindplane.yaml").read_text(encoding="utf-8")
    assert "BindplaneTag" in parse_template("bindplane.yaml", text).variables


def _render(filename: str, record: ConfigurationRecord) -> dict:
    text = (BUNDLED_TEMPLATES_DIR / filename).read_text(encoding="utf-8")
    return yaml.safe_load(render_template(text, build_variable_set(record), name=filename))


def _secret(doc: dict, name: str) -> str:
    secrets = doc["properties"]["configuration"]["secrets"]
    return next(s["value"] for s in secrets if s["name"] == name)


def _env(doc: dict, name: str) -> str:
    env = doc["properties"]["template"]["containers"][0]["env"]
    return next(e["value"] for e in env if e["name"] == name)


class TestSecretValues:
    @pytest.mark.parametrize(
        "password",
        ["*x", "a: b", "123456", "&x", "yes", "null", "'quoted'", 'say "hi"', "# not a comment",
         "back\\slash", "{flow}", "- item", "trailing "],
    )
    def test_password_loads_back_unchanged(self, password):
        rec = RECORD.model_copy(update={"postgres_password": password})
        for filename in ("bindplane.yaml", "jobs.yaml", "jobs-migrate.yaml"):
            doc = _render(filename, rec)
            assert _secret(doc, "postgres-password") == password, filename

    @pytest.mark.parametrize("value", ["*x", "a: b", "0042", "true"])
    def test_license_and_session_secret(self, value):
        rec = RECORD.model_copy(update={"license": value, "session_secret": value})
        doc = _render("bindplane.yaml", rec)
        assert _secret(doc, "license") == value
        assert _secret(doc, "session-secret") == value
        assert _secret(_render("collector.yaml", rec), "license") == value

    def test_numeric_username_stays_string(self):
        rec = RECORD.model_copy(update={"postgres_username": "123456"})
        doc = _render("jobs.yaml", rec)
        assert _env(doc, "BINDPLANE_POSTGRES_USERNAME") == "123456"


class TestManagedIdentity:
    IDENTITY_ID = "/subscriptions/s/resourceGroups/rg/providers/Microsoft.ManagedIdentity/userAssignedIdentities/mi-1"

    def _mi_record(self) -> ConfigurationRecord:
        return RECORD.model_copy(
            update={
                "credential_scheme": CredentialScheme.MANAGED_IDENTITY,
                "managed_identity_id": self.IDENTITY_ID,
                "managed_identity_client_id": "client-1",
                "storage_account_key": "",
            }
        )

    @pytest.mark.parametrize("filename", ["bindplane.yaml", "jobs.yaml", "jobs-migrate.yaml"])
    def test_identity_attached(self, filename):
        doc = _render(filename, self._mi_record())
        assert doc["identity"]["type"] == "UserAssigned"
        assert self.IDENTITY_ID in doc["identity"]["userAssignedIdentities"]

    def test_client_id_exposed(self):
        doc = _render("bindplane.yaml", self._mi_record())
        assert _env(doc, "AZURE_CLIENT_ID") == "client-1"

    def test_shared_key_has_no_identity(self):
        assert _render("bindplane.yaml", RECORD)["identity"] == {"type": "None"}

    def test_secrets_component_uses_client_id(self):
        doc = _render("secrets.yaml", self._mi_record())
        metadata = {m["name"]: m for m in doc["metadata"]}
        assert metadata["azureClientId"]["value"] == "client-1"
        assert "accountKey" not in metadata
        assert doc["secrets"] == []


class TestSecretsComponent:
    def test_dapr_component_shape(self):
        doc = _render("secrets.yaml", RECORD)
        assert doc["componentType"] == "state.azure.blobstorage"
        metadata = {m["name"]: m for m in doc["metadata"]}
        assert metadata["accountName"]["value"] == "acct"
        assert metadata["accountKey"]["secretRef"] == "storage-account-key"
        assert doc["secrets"] == [{"name": "storage-account-key", "value": "key"}]

    def test_scoped_apps_enable_dapr(self):
        doc = _render("secrets.yaml", RECORD)
        for filename in ("bindplane.yaml", "jobs.yaml"):
            app = _render(filename, RECORD)
            dapr = app["properties"]["configuration"]["dapr"]
            assert dapr["enabled"] is True
            assert dapr["appId"] in doc["scopes"]
