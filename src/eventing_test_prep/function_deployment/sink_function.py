"""Eventing-sink test function deployment and reachability checks."""

from __future__ import annotations

import logging
from typing import Any

import requests
from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from eventing_test_prep.cluster_resources.ingress_exposer import get_service_host
from eventing_test_prep.cluster_resources.kubectl_client import KubectlClient
from eventing_test_prep.cluster_resources.resource_manifests import (
    API_RULE_KIND,
    build_api_rule,
)
from eventing_test_prep.errors import ReachabilityTimeoutError, TransientNetworkError
from eventing_test_prep.http_transport import HttpSession

_LOGGER = logging.getLogger(__name__)

FUNCTION_API_VERSION = "serverless.kyma-project.io/v1alpha2"
FUNCTION_RUNTIME = "nodejs18"
FUNCTION_SERVICE_PORT = 80
FUNCTION_READY_TIMEOUT_SECONDS = 300

# Keeps received CloudEvents in memory and serves them back by event id.
_SINK_SOURCE = """
const events = new Map();
module.exports = {
  main: function (event, context) {
    const req = event.extensions.request;
    if (req.method === 'POST') {
      const id = req.headers['ce-id'] || (event.data && event.data.id);
      events.set(id, {headers: req.headers, data: event.data});
      return 'stored';
    }
    const id = req.path.split('/').pop();
    if (id && events.has(id)) {
      return events.get(id);
    }
    return 'ok';
  }
};
""".lstrip()


class SinkUnreachableError(TransientNetworkError):
    """Raised when one reachability check against the sink fails."""


def build_sink_function(name: str, namespace: str) -> dict[str, Any]:
    return {
        "apiVersion": FUNCTION_API_VERSION,
        "kind": "Function",
        "metadata": {"name": name, "namespace": namespace, "labels": {"app": name}},
        "spec": {
            "runtime": FUNCTION_RUNTIME,
            "source": {"inline": {"source": _SINK_SOURCE}},
        },
    }


def build_namespace(name: str) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": name, "labels": {"istio-injection": "enabled"}},
    }


def check_reachable(
    session: HttpSession,
    function_name: str,
    namespace: str,
    host: str,
    *,
    timeout_seconds: int = 30,
) -> None:
    """Call the function once through its APIRule host."""
    url = f"https://{host}/"
    try:
        response = session.get(url, timeout=timeout_seconds, verify=False)
    except requests.RequestException as exc:
        raise SinkUnreachableError(
            f"Function {namespace}/{function_name} is not reachable at {url}: {exc}"
        ) from exc
    if response.status_code >= 400:
        raise SinkUnreachableError(
            f"Function {namespace}/{function_name} answered {response.status_code} at {url}"
        )


def wait_until_reachable(
    session: HttpSession,
    function_name: str,
    namespace: str,
    host: str,
    *,
    attempts: int = 5,
    wait_seconds: float = 5.0,
    timeout_seconds: int = 30,
) -> None:
    """Call the function until it answers or the attempt budget runs out."""
    if not host:
        raise ValueError(f"No host known for function {namespace}/{function_name}.")
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(wait_seconds),
        retry=retry_if_exception_type(SinkUnreachableError),
        before_sleep=before_sleep_log(_LOGGER, logging.WARNING),
    )
    try:
        retrying(
            check_reachable,
            session,
            function_name,
            namespace,
            host,
            timeout_seconds=timeout_seconds,
        )
    except RetryError as exc:
        raise ReachabilityTimeoutError(
            f"Function {namespace}/{function_name} not reachable after {attempts} attempts: "
            f"{exc.last_attempt.exception()}"
        ) from exc


class SinkFunctionDeployer:
    """Deploys the eventing-sink function with an APIRule in the test namespace."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        kubectl: KubectlClient,
        session: HttpSession,
        *,
        function_name: str,
        namespace: str,
        ready_timeout_seconds: int = FUNCTION_READY_TIMEOUT_SECONDS,
        host_lookup_attempts: int = 20,
        host_lookup_wait_seconds: float = 3.0,
    ) -> None:
        self._kubectl = kubectl
        self._session = session
        self._function_name = function_name
        self._namespace = namespace
        self._ready_timeout_seconds = ready_timeout_seconds
        self._host_lookup_attempts = host_lookup_attempts
        self._host_lookup_wait_seconds = host_lookup_wait_seconds

    @property
    def function_name(self) -> str:
        return self._function_name

    @property
    def namespace(self) -> str:
        return self._namespace

    def deploy_function(self) -> None:
        _LOGGER.debug("deploying function %s/%s", self._namespace, self._function_name)
        self._kubectl.apply(
            [
                build_namespace(self._namespace),
                build_sink_function(self._function_name, self._namespace),
                build_api_rule(
                    self._function_name,
                    self._namespace,
                    self._function_name,
                    FUNCTION_SERVICE_PORT,
                ),
            ]
        )

    def wait_for_function_ready(self) -> None:
        self._kubectl.wait(
            "functions",
            self._function_name,
            self._namespace,
            condition="Running",
            timeout_seconds=self._ready_timeout_seconds,
        )

    def get_service_host(self) -> str:
        return get_service_host(
            self._kubectl,
            self._function_name,
            self._namespace,
            attempts=self._host_lookup_attempts,
            wait_seconds=self._host_lookup_wait_seconds,
        )

    def remove(self) -> None:
        self._kubectl.delete_each(
            [
                (API_RULE_KIND.lower(), self._function_name, self._namespace),
                ("functions", self._function_name, self._namespace),
            ]
        )
