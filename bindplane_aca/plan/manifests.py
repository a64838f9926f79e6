"""Manifest catalogue, dependency graph, and plan construction.

A single :func:`build_manifest_plan` covers every deployment variant: the
optional monitoring, messaging-cluster, and telemetry-collector manifests
are switched on or off by a :class:`CapabilityProfile` instead of living
in separate copies of the pipeline.

Deploy order is derived from a fixed dependency graph::

    secrets → monitoring? → messaging-cluster? → {worker-agent, jobs-migration}
            → jobs → primary-application → telemetry-collector?

Optional nodes missing from a plan are bypassed: their dependents inherit
their dependencies, so ``[primary-application, jobs]`` still deploys
``jobs`` first.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from bindplane_aca.config.models import CapabilityProfile

# ── manifest identifiers ─────────────────────────────────────────────

SECRETS = "secrets"
MONITORING = "monitoring"
MESSAGING_CLUSTER = "messaging-cluster"
WORKER_AGENT = "worker-agent"
JOBS_MIGRATION = "jobs-migration"
JOBS = "jobs"
PRIMARY_APPLICATION = "primary-application"
TELEMETRY_COLLECTOR = "telemetry-collector"


class ManifestKind(str, Enum):
    """How a manifest is applied by ``deploy.sh``."""

    APP = "app"
    JOB = "job"
    SECRETS = "secrets"


@dataclass(frozen=True)
class Manifest:
    """Static description of one deployable manifest.

    Attributes:
        id: Logical identifier used in plans.
        filename: Template file name; rendered output keeps the same name.
        entity: Name of the Azure resource the manifest creates.
        kind: Determines the ``az`` subcommand used to apply it.
        label: Human-readable progress label for the deploy script.
        stateful: When true the deploy script waits for it to be ready.
        optional: Whether a capability profile may leave it out.
    """

    id: str
    filename: str
    entity: str
    kind: ManifestKind
    label: str
    stateful: bool = False
    optional: bool = False


MANIFESTS: Dict[str, Manifest] = {
    m.id: m
    for m in (
        Manifest(SECRETS, "secrets.yaml", "bindplane-secrets", ManifestKind.SECRETS,
                 "secrets and storage"),
        Manifest(MONITORING, "prometheus.yaml", "bindplane-prometheus", ManifestKind.APP,
                 "Prometheus", stateful=True, optional=True),
        Manifest(MESSAGING_CLUSTER, "nats.yaml", "bindplane-nats", ManifestKind.APP,
                 "NATS cluster", stateful=True, optional=True),
        Manifest(WORKER_AGENT, "transform-agent.yaml", "bindplane-transform-agent",
                 ManifestKind.APP, "Transform Agent"),
        Manifest(JOBS_MIGRATION, "jobs-migrate.yaml", "bindplane-jobs-migrate",
                 ManifestKind.JOB, "Jobs Migrate component"),
        Manifest(JOBS, "jobs.yaml", "bindplane-jobs", ManifestKind.APP, "Jobs component"),
        Manifest(PRIMARY_APPLICATION, "bindplane.yaml", "bindplane", ManifestKind.APP,
                 "main Bindplane application", stateful=True),
        Manifest(TELEMETRY_COLLECTOR, "collector.yaml", "bindplane-collector",
                 ManifestKind.APP, "telemetry collector", optional=True),
    )
}

#: Order in which manifests are rendered (observability only).
RENDER_ORDER: Tuple[str, ...] = (
    PRIMARY_APPLICATION,
    JOBS,
    JOBS_MIGRATION,
    MESSAGING_CLUSTER,
    MONITORING,
    WORKER_AGENT,
    SECRETS,
    TELEMETRY_COLLECTOR,
)

#: Canonical deploy order; also the tie-breaker for the topological sort.
DEPLOY_ORDER: Tuple[str, ...] = (
    SECRETS,
    MONITORING,
    MESSAGING_CLUSTER,
    WORKER_AGENT,
    JOBS_MIGRATION,
    JOBS,
    PRIMARY_APPLICATION,
    TELEMETRY_COLLECTOR,
)

#: Direct dependencies: a manifest is deployed after everything it lists.
DEPENDENCIES: Dict[str, FrozenSet[str]] = {
    SECRETS: frozenset(),
    MONITORING: frozenset({SECRETS}),
    MESSAGING_CLUSTER: frozenset({MONITORING}),
    WORKER_AGENT: frozenset({MESSAGING_CLUSTER}),
    JOBS_MIGRATION: frozenset({MESSAGING_CLUSTER}),
    JOBS: frozenset({WORKER_AGENT, JOBS_MIGRATION}),
    PRIMARY_APPLICATION: frozenset({JOBS}),
    TELEMETRY_COLLECTOR: frozenset({PRIMARY_APPLICATION}),
}


def get_manifest(manifest_id: str) -> Manifest:
    """Look up a manifest; raise :class:`ValueError` for unknown ids."""
    try:
        return MANIFESTS[manifest_id]
    except KeyError:
        raise ValueError(
            f"Unknown manifest '{manifest_id}'. Known: {', '.join(DEPLOY_ORDER)}"
        ) from None


# ── plan construction ────────────────────────────────────────────────


def build_manifest_plan(profile: CapabilityProfile) -> Tuple[str, ...]:
    """Return the ordered manifest ids to render for *profile*."""
    enabled = {
        MONITORING: profile.monitoring,
        MESSAGING_CLUSTER: profile.stateful_messaging,
        TELEMETRY_COLLECTOR: profile.collector,
    }
    return tuple(m for m in RENDER_ORDER if enabled.get(m, True))


def _effective_dependencies(manifest_id: str, present: Set[str]) -> Set[str]:
    """Dependencies of *manifest_id* restricted to *present*, bypassing absent nodes."""
    found: Set[str] = set()
    pending = list(DEPENDENCIES[manifest_id])
    seen: Set[str] = set()
    while pending:
        dep = pending.pop()
        if dep in seen:
            continue
        seen.add(dep)
        if dep in present:
            found.add(dep)
        else:
            pending.extend(DEPENDENCIES[dep])
    return found


def deploy_order(plan: Iterable[str]) -> List[str]:
    """Topologically sort *plan* by the dependency graph.

    Ties are broken by :data:`DEPLOY_ORDER`, so the result is deterministic.
    Duplicate ids are collapsed.
    """
    present: Set[str] = set()
    for manifest_id in plan:
        get_manifest(manifest_id)
        present.add(manifest_id)

    remaining: Dict[str, Set[str]] = {
        m: _effective_dependencies(m, present) for m in present
    }
    rank = {m: i for i, m in enumerate(DEPLOY_ORDER)}
    ordered: List[str] = []

    while remaining:
        ready = sorted((m for m, deps in remaining.items() if not deps), key=rank.__getitem__)
        # The graph is a fixed DAG, so there is always a ready node.
        nxt = ready[0]
        ordered.append(nxt)
        del remaining[nxt]
        for deps in remaining.values():
            deps.discard(nxt)

    return ordered
