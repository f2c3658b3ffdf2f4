"""Resolve a runtime's registry identity from its Gardener shoot."""

from __future__ import annotations

from eventing_test_prep.cluster_resources.kubectl_client import KubectlClient

RUNTIME_ID_ANNOTATION = "compass.provisioner.kyma-project.io/runtime-id"


class RuntimeIdentityError(Exception):
    """Raised when the shoot carries no registry runtime id."""


def resolve_runtime_identity(
    gardener_kubectl: KubectlClient, shoot_name: str, gardener_namespace: str
) -> str:
    shoot = gardener_kubectl.get("shoots", shoot_name, gardener_namespace)
    if shoot is None:
        raise RuntimeIdentityError(f"Shoot {gardener_namespace}/{shoot_name} not found.")
    annotations = (shoot.get("metadata") or {}).get("annotations") or {}
    runtime_id = annotations.get(RUNTIME_ID_ANNOTATION)
    if not isinstance(runtime_id, str) or not runtime_id.strip():
        raise RuntimeIdentityError(
            f"Shoot {shoot_name} has no '{RUNTIME_ID_ANNOTATION}' annotation."
        )
    return runtime_id.strip()
