"""Manifest builders for the cluster resources created during preparation."""

from __future__ import annotations

import base64
from collections.abc import Mapping
from typing import Any

API_RULE_API_VERSION = "gateway.kyma-project.io/v1beta1"
API_RULE_KIND = "APIRule"
API_RULE_GATEWAY = "kyma-gateway.kyma-system.svc.cluster.local"
API_RULE_OWNER_LABEL = "apirule.gateway.kyma-project.io/v1beta1"
EVENTING_BACKEND_LABEL = ("kyma-project.io/eventing-backend", "BEB")


def build_api_rule(
    name: str, namespace: str, service_name: str, port: int
) -> dict[str, Any]:
    """APIRule that exposes the service on a host named after the rule."""
    return {
        "apiVersion": API_RULE_API_VERSION,
        "kind": API_RULE_KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "gateway": API_RULE_GATEWAY,
            "host": name,
            "service": {"name": service_name, "port": port},
            "rules": [
                {
                    "path": "/.*",
                    "methods": ["GET", "POST"],
                    "accessStrategies": [{"handler": "allow"}],
                }
            ],
        },
    }


def api_rule_owner_selector(name: str, namespace: str) -> str:
    """Label selector matching the VirtualService generated for an APIRule."""
    return f"{API_RULE_OWNER_LABEL}={name}.{namespace}"


def build_secret(
    name: str,
    namespace: str,
    string_data: Mapping[str, str],
    labels: Mapping[str, str] | None = None,
) -> dict[str, Any]:
    metadata: dict[str, Any] = {"name": name, "namespace": namespace}
    if labels:
        metadata["labels"] = dict(labels)
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "type": "Opaque",
        "metadata": metadata,
        "data": {key: _base64(value) for key, value in string_data.items()},
    }


def build_config_map(name: str, namespace: str, data: Mapping[str, str]) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace},
        "data": dict(data),
    }


def _base64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")
