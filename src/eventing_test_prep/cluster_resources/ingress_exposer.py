"""Expose internal services through APIRules for the duration of a run."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from eventing_test_prep.errors import TransientNetworkError

from .kubectl_client import KubectlClient
from .resource_manifests import API_RULE_KIND, api_rule_owner_selector, build_api_rule

_LOGGER = logging.getLogger(__name__)

HOST_LOOKUP_ATTEMPTS = 20
HOST_LOOKUP_WAIT_SECONDS = 3.0


class ServiceHostNotFoundError(TransientNetworkError):
    """Raised when no host has been published for an APIRule."""


@dataclass(frozen=True)
class IngressRule:
    """One exposed route and the host it was published on."""

    name: str
    namespace: str
    service_name: str
    port: int
    host: str


def create_ingress_rule(
    kubectl: KubectlClient,
    name: str,
    namespace: str,
    target_service: str,
    port: int,
    *,
    host_lookup_attempts: int = HOST_LOOKUP_ATTEMPTS,
    host_lookup_wait_seconds: float = HOST_LOOKUP_WAIT_SECONDS,
) -> IngressRule:
    """Create the APIRule and wait until its VirtualService publishes a host."""
    _LOGGER.debug("exposing %s/%s:%s with apirule %s", namespace, target_service, port, name)
    kubectl.apply([build_api_rule(name, namespace, target_service, port)])
    host = get_service_host(
        kubectl,
        name,
        namespace,
        attempts=host_lookup_attempts,
        wait_seconds=host_lookup_wait_seconds,
    )
    return IngressRule(
        name=name,
        namespace=namespace,
        service_name=target_service,
        port=port,
        host=host,
    )


def delete_ingress_rule(kubectl: KubectlClient, name: str, namespace: str) -> None:
    _LOGGER.debug("deleting apirule %s/%s", namespace, name)
    kubectl.delete(API_RULE_KIND.lower(), name, namespace)


def get_service_host(
    kubectl: KubectlClient,
    name: str,
    namespace: str,
    *,
    attempts: int = HOST_LOOKUP_ATTEMPTS,
    wait_seconds: float = HOST_LOOKUP_WAIT_SECONDS,
) -> str:
    """Return the first host of the VirtualService generated for the APIRule."""
    selector = api_rule_owner_selector(name, namespace)

    @retry(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception_type(ServiceHostNotFoundError),
        reraise=True,
    )
    def _attempt() -> str:
        for virtual_service in kubectl.list_by_label(
            "virtualservices", namespace, label_selector=selector
        ):
            hosts = (virtual_service.get("spec") or {}).get("hosts") or []
            if hosts and isinstance(hosts[0], str) and hosts[0]:
                return hosts[0]
        raise ServiceHostNotFoundError(f"No host published for apirule {namespace}/{name}.")

    return _attempt()
