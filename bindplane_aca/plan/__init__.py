"""Manifest plans and deploy ordering."""

from bindplane_aca.plan.manifests import (
    DEPENDENCIES,
    DEPLOY_ORDER,
    MANIFESTS,
    RENDER_ORDER,
    Manifest,
    ManifestKind,
    build_manifest_plan,
    deploy_order,
    get_manifest,
)

__all__ = [
    "DEPENDENCIES",
    "DEPLOY_ORDER",
    "MANIFESTS",
    "Manifest",
    "ManifestKind",
    "RENDER_ORDER",
    "build_manifest_plan",
    "deploy_order",
    "get_manifest",
]
