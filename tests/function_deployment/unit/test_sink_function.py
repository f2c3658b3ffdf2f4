"""Eventing-sink function deployment and reachability tests."""

from __future__ import annotations

import json

import pytest
import requests
import yaml
from eventing_test_prep.cluster_resources import ClusterCommandError, CommandResult, KubectlClient
from eventing_test_prep.errors import ReachabilityTimeoutError
from eventing_test_prep.function_deployment import (
    SinkFunctionDeployer,
    SinkUnreachableError,
    check_reachable,
    wait_until_reachable,
)


def _response(status_code: int) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = b"ok"  # pylint: disable=protected-access
    return response


class _StatusQueueSession:
    """Answers GETs from a queue of status codes or exceptions."""

    def __init__(self, *outcomes: int | Exception) -> None:
        self._outcomes = list(outcomes)
        self.urls: list[str] = []

    def get(self, url: str, **kwargs) -> requests.Response:
        self.urls.append(url)
        assert kwargs["verify"] is False
        outcome = self._outcomes.pop(0) if self._outcomes else 503
        if isinstance(outcome, Exception):
            raise outcome
        return _response(outcome)

    def post(self, url: str, **kwargs) -> requests.Response:
        raise AssertionError("unexpected POST")


class _RecordingRunner:
    def __init__(
        self, hosts: list[str] | None = None, failing_delete_kind: str | None = None
    ) -> None:
        self._hosts = hosts or []
        self._failing_delete_kind = failing_delete_kind
        self.calls: list[tuple[tuple[str, ...], str | None]] = []

    def __call__(
        self, command: tuple[str, ...], stdin: str | None, timeout_seconds: int
    ) -> CommandResult:
        self.calls.append((command, stdin))
        if command[1:3] == ("delete", self._failing_delete_kind):
            return CommandResult(1, "", "the server is currently unable to handle the request")
        if "virtualservices" in command:
            items = [{"spec": {"hosts": self._hosts}}] if self._hosts else []
            return CommandResult(0, json.dumps({"items": items}), "")
        return CommandResult(0, "", "")


def test_check_reachable_accepts_success_status() -> None:
    session = _StatusQueueSession(200)

    check_reachable(session, "eventing-sink", "test", "sink.example.com")

    assert session.urls == ["https://sink.example.com/"]


def test_check_reachable_raises_on_error_status() -> None:
    with pytest.raises(SinkUnreachableError, match="answered 502"):
        check_reachable(_StatusQueueSession(502), "eventing-sink", "test", "sink.example.com")


def test_wait_until_reachable_retries_until_success() -> None:
    session = _StatusQueueSession(requests.ConnectionError("refused"), 503, 200)

    wait_until_reachable(
        session, "eventing-sink", "test", "sink.example.com", attempts=5, wait_seconds=0
    )

    assert len(session.urls) == 3


def test_wait_until_reachable_stops_after_five_attempts() -> None:
    session = _StatusQueueSession()

    with pytest.raises(ReachabilityTimeoutError, match="after 5 attempts") as exc_info:
        wait_until_reachable(session, "eventing-sink", "test", "sink.example.com", wait_seconds=0)

    assert len(session.urls) == 5
    assert isinstance(exc_info.value, TimeoutError)


def test_wait_until_reachable_requires_host() -> None:
    session = _StatusQueueSession(200)

    with pytest.raises(ValueError, match="No host known"):
        wait_until_reachable(session, "eventing-sink", "test", "", wait_seconds=0)
    assert session.urls == []


def test_deploy_function_applies_namespace_function_and_api_rule() -> None:
    runner = _RecordingRunner()
    deployer = SinkFunctionDeployer(
        KubectlClient(run_command=runner),
        _StatusQueueSession(),
        function_name="eventing-sink",
        namespace="test",
    )

    deployer.deploy_function()

    kinds = [doc["kind"] for doc in yaml.safe_load_all(runner.calls[0][1] or "")]
    assert kinds == ["Namespace", "Function", "APIRule"]


def test_wait_for_function_ready_waits_for_running_condition() -> None:
    runner = _RecordingRunner()
    deployer = SinkFunctionDeployer(
        KubectlClient(run_command=runner),
        _StatusQueueSession(),
        function_name="eventing-sink",
        namespace="test",
        ready_timeout_seconds=90,
    )

    deployer.wait_for_function_ready()

    assert runner.calls[0][0][1:] == (
        "wait",
        "functions/eventing-sink",
        "-n",
        "test",
        "--for=condition=Running",
        "--timeout=90s",
    )


def test_get_service_host_reads_virtual_service() -> None:
    runner = _RecordingRunner(hosts=["eventing-sink.example.com"])
    deployer = SinkFunctionDeployer(
        KubectlClient(run_command=runner),
        _StatusQueueSession(),
        function_name="eventing-sink",
        namespace="test",
        host_lookup_wait_seconds=0,
    )

    assert deployer.get_service_host() == "eventing-sink.example.com"


def test_remove_deletes_api_rule_and_function() -> None:
    runner = _RecordingRunner()
    deployer = SinkFunctionDeployer(
        KubectlClient(run_command=runner),
        _StatusQueueSession(),
        function_name="eventing-sink",
        namespace="test",
    )

    deployer.remove()

    assert [command[2] for command, _ in runner.calls] == ["apirule", "functions"]


def test_remove_still_deletes_function_when_api_rule_delete_fails() -> None:
    runner = _RecordingRunner(failing_delete_kind="apirule")
    deployer = SinkFunctionDeployer(
        KubectlClient(run_command=runner),
        _StatusQueueSession(),
        function_name="eventing-sink",
        namespace="test",
    )

    with pytest.raises(ClusterCommandError, match="1 of 2 deletions failed"):
        deployer.remove()

    assert [command[2] for command, _ in runner.calls] == ["apirule", "functions"]
