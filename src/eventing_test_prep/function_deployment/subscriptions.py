"""Event subscription manifests for the eventing-sink function."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence
from typing import Any

from eventing_test_prep.cluster_resources.kubectl_client import KubectlClient

_LOGGER = logging.getLogger(__name__)

SUBSCRIPTION_GROUP = "eventing.kyma-project.io"
V1ALPHA1 = "v1alpha1"
V1ALPHA2 = "v1alpha2"
EVENT_TYPE_PREFIX = "sap.kyma.custom"

_NON_ALPHANUMERIC = re.compile(r"[^a-zA-Z0-9]")
_NON_NAME_CHARACTERS = re.compile(r"[^a-z0-9-]+")
_MAX_NAME_LENGTH = 63

SubscriptionBuilder = Callable[[str, str, str, str], dict[str, Any]]


def clean_application_name(app_name: str) -> str:
    """Application segment as it appears in v1alpha1 event types."""
    return _NON_ALPHANUMERIC.sub("", app_name)


def subscription_name(sink_name: str, event_type: str, version: str) -> str:
    raw = f"{sink_name}-{event_type}-{version}".lower()
    return _NON_NAME_CHARACTERS.sub("-", raw).strip("-")[:_MAX_NAME_LENGTH].rstrip("-")


def sink_url(sink_name: str, namespace: str) -> str:
    return f"http://{sink_name}.{namespace}.svc.cluster.local"


def build_v1alpha1_subscription(
    sink_name: str, namespace: str, app_name: str, event_type: str
) -> dict[str, Any]:
    full_type = f"{EVENT_TYPE_PREFIX}.{clean_application_name(app_name)}.{event_type}"
    return {
        "apiVersion": f"{SUBSCRIPTION_GROUP}/{V1ALPHA1}",
        "kind": "Subscription",
        "metadata": {
            "name": subscription_name(sink_name, event_type, V1ALPHA1),
            "namespace": namespace,
        },
        "spec": {
            "sink": sink_url(sink_name, namespace),
            "filter": {
                "filters": [
                    {
                        "eventSource": {"property": "source", "type": "exact", "value": ""},
                        "eventType": {"property": "type", "type": "exact", "value": full_type},
                    }
                ]
            },
        },
    }


def build_v1alpha2_subscription(
    sink_name: str, namespace: str, app_name: str, event_type: str
) -> dict[str, Any]:
    return {
        "apiVersion": f"{SUBSCRIPTION_GROUP}/{V1ALPHA2}",
        "kind": "Subscription",
        "metadata": {
            "name": subscription_name(sink_name, event_type, V1ALPHA2),
            "namespace": namespace,
        },
        "spec": {
            "sink": sink_url(sink_name, namespace),
            "source": app_name,
            "types": [event_type],
            "typeMatching": "standard",
        },
    }


class SubscriptionDeployer:
    """Creates the subscriptions that route test events to the sink."""

    def __init__(
        self,
        kubectl: KubectlClient,
        *,
        namespace: str,
        sink_name: str,
        app_name: str,
        event_types: Sequence[str],
        include_v1alpha2: bool = True,
    ) -> None:
        self._kubectl = kubectl
        self._namespace = namespace
        self._sink_name = sink_name
        self._app_name = app_name
        self._event_types = tuple(event_types)
        self._include_v1alpha2 = include_v1alpha2

    def deploy_subscriptions_v1(self) -> list[str]:
        return self._deploy(V1ALPHA1, build_v1alpha1_subscription)

    def deploy_subscriptions_v2(self) -> list[str]:
        return self._deploy(V1ALPHA2, build_v1alpha2_subscription)

    def remove(self) -> None:
        versions = (V1ALPHA1, V1ALPHA2) if self._include_v1alpha2 else (V1ALPHA1,)
        self._kubectl.delete_each(
            [
                (
                    f"subscriptions.{version}.{SUBSCRIPTION_GROUP}",
                    subscription_name(self._sink_name, event_type, version),
                    self._namespace,
                )
                for event_type in self._event_types
                for version in versions
            ]
        )

    def _deploy(self, version: str, builder: SubscriptionBuilder) -> list[str]:
        manifests = [
            builder(self._sink_name, self._namespace, self._app_name, event_type)
            for event_type in self._event_types
        ]
        _LOGGER.debug("deploying %d %s subscriptions", len(manifests), version)
        self._kubectl.apply(manifests)
        return [manifest["metadata"]["name"] for manifest in manifests]
