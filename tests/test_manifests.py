"""Tests for bindplane_aca.plan.manifests: plan construction and deploy order."""

from __future__ import annotations

import pytest

from bindplane_aca.config.models import CapabilityProfile
from bindplane_aca.plan.manifests import (
    DEPENDENCIES,
    DEPLOY_ORDER,
    MANIFESTS,
    RENDER_ORDER,
    ManifestKind,
    build_manifest_plan,
    deploy_order,
    get_manifest,
)


class TestCatalogue:
    def test_orders_cover_catalogue(self):
        assert set(RENDER_ORDER) == set(MANIFESTS)
        assert set(DEPLOY_ORDER) == set(MANIFESTS)
        assert set(DEPENDENCIES) == set(MANIFESTS)

    def test_filenames(self):
        assert {m.filename for m in MANIFESTS.values()} == {
            "bindplane.yaml",
            "jobs.yaml",
            "jobs-migrate.yaml",
            "nats.yaml",
            "prometheus.yaml",
            "transform-agent.yaml",
            "secrets.yaml",
            "collector.yaml",
        }

    def test_optional_manifests(self):
        optional = {m.id for m in MANIFESTS.values() if m.optional}
        assert optional == {"monitoring", "messaging-cluster", "telemetry-collector"}

    def test_kinds(self):
        assert get_manifest("jobs-migration").kind == ManifestKind.JOB
        assert get_manifest("secrets").kind == ManifestKind.SECRETS
        assert get_manifest("primary-application").kind == ManifestKind.APP

    def test_deploy_order_respects_dependencies(self):
        position = {m: i for i, m in enumerate(DEPLOY_ORDER)}
        for manifest_id, deps in DEPENDENCIES.items():
            for dep in deps:
                assert position[dep] < position[manifest_id]

    def test_unknown_manifest(self):
        with pytest.raises(ValueError, match="Unknown manifest 'bogus'"):
            get_manifest("bogus")


class TestBuildManifestPlan:
    def test_default_profile(self):
        assert build_manifest_plan(CapabilityProfile()) == (
            "primary-application",
            "jobs",
            "jobs-migration",
            "messaging-cluster",
            "monitoring",
            "worker-agent",
            "secrets",
        )

    def test_monitoring_omitted(self):
        plan = build_manifest_plan(CapabilityProfile(monitoring=False))
        assert "monitoring" not in plan
        assert len(plan) == 6

    def test_servicebus_omits_messaging_cluster(self):
        plan = build_manifest_plan(CapabilityProfile(stateful_messaging=False))
        assert "messaging-cluster" not in plan

    def test_collector_appended(self):
        plan = build_manifest_plan(CapabilityProfile(collector=True))
        assert plan[-1] == "telemetry-collector"

    def test_relative_order_stable(self):
        full = build_manifest_plan(CapabilityProfile(collector=True))
        trimmed = build_manifest_plan(
            CapabilityProfile(monitoring=False, stateful_messaging=False)
        )
        assert list(trimmed) == [m for m in full if m in trimmed]


class TestDeployOrder:
    def test_full_plan(self):
        plan = build_manifest_plan(CapabilityProfile(collector=True))
        assert deploy_order(plan) == list(DEPLOY_ORDER)

    def test_jobs_before_primary(self):
        assert deploy_order(["primary-application", "jobs"]) == ["jobs", "primary-application"]

    def test_optional_nodes_bypassed(self):
        plan = build_manifest_plan(CapabilityProfile(monitoring=False, stateful_messaging=False))
        assert deploy_order(plan) == [
            "secrets",
            "worker-agent",
            "jobs-migration",
            "jobs",
            "primary-application",
        ]

    def test_secrets_first_even_without_intermediates(self):
        assert deploy_order(["primary-application", "secrets"]) == [
            "secrets",
            "primary-application",
        ]

    def test_duplicates_collapsed(self):
        assert deploy_order(["jobs", "jobs"]) == ["jobs"]

    def test_empty(self):
        assert deploy_order([]) == []

    def test_unknown_rejected(self):
        with pytest.raises(ValueError):
            deploy_order(["jobs", "bogus"])

    def test_input_order_irrelevant(self):
        plan = list(build_manifest_plan(CapabilityProfile()))
        assert deploy_order(plan) == deploy_order(list(reversed(plan)))
