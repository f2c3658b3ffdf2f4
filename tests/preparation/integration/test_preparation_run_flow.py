"""End-to-end preparation run tests against scripted cluster and HTTP fakes."""

from __future__ import annotations

import json
import tempfile
from pathlib import Path

import pytest
import requests
import yaml
from eventing_test_prep.cluster_resources import CommandResult
from eventing_test_prep.configuration import load_configuration
from eventing_test_prep.preparation import (
    STEP_NAMES,
    StepStatus,
    build_collaborators,
    execute_preparation_run,
)

_HOSTS_BY_SELECTOR = {
    "apirule.gateway.kyma-project.io/v1beta1=eventing-nats-apirule.kyma-system": (
        "nats.example.com"
    ),
    "apirule.gateway.kyma-project.io/v1beta1=eventing-sink.test": "sink.example.com",
}

_JSZ = {
    "account_details": [
        {"stream_detail": [{"name": "sap", "created": "2024-01-01T10:00:00Z"}]},
    ]
}


class _FakeCluster:
    """Scripted kubectl: records every command and answers like an empty cluster."""

    def __init__(self, *, fail_apply: bool = False) -> None:
        self.fail_apply = fail_apply
        self.calls: list[tuple[tuple[str, ...], str | None]] = []

    def __call__(
        self, command: tuple[str, ...], stdin: str | None, timeout_seconds: int
    ) -> CommandResult:
        self.calls.append((command, stdin))
        arguments = _arguments(command)
        verb = arguments[0]
        if verb == "apply" and self.fail_apply:
            return CommandResult(1, "", "Unable to connect to the server")
        if verb == "get" and arguments[1] == "virtualservices":
            selector = arguments[arguments.index("-l") + 1]
            host = _HOSTS_BY_SELECTOR.get(selector)
            items = [{"spec": {"hosts": [host]}}] if host else []
            return CommandResult(0, json.dumps({"items": items}), "")
        if verb == "create":
            return CommandResult(0, json.dumps(yaml.safe_load(stdin or "")), "")
        return CommandResult(0, "", "")

    def commands(self, verb: str) -> list[tuple[str, ...]]:
        return [command for command, _ in self.calls if _arguments(command)[0] == verb]

    def created_kinds(self) -> list[str]:
        return [
            yaml.safe_load(stdin or "")["kind"]
            for command, stdin in self.calls
            if _arguments(command)[0] == "create"
        ]


def _arguments(command: tuple[str, ...]) -> tuple[str, ...]:
    if len(command) > 2 and command[1] == "--kubeconfig":
        return command[3:]
    return command[1:]


def _response(status_code: int, body: str) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = body.encode("utf-8")  # pylint: disable=protected-access
    response.url = "https://example.com"
    return response


class _FakeHttp:
    def __init__(self, *, sink_status: int = 200) -> None:
        self.sink_status = sink_status
        self.urls: list[str] = []

    def get(self, url: str, **kwargs) -> requests.Response:
        self.urls.append(url)
        if url.endswith("/jsz?streams=true"):
            return _response(200, json.dumps(_JSZ))
        if "/kubeconfig/" in url:
            return _response(200, "apiVersion: v1\nkind: Config\n")
        if url.startswith("https://sink.example.com"):
            return _response(self.sink_status, "ok")
        return _response(404, "")

    def post(self, url: str, **kwargs) -> requests.Response:
        raise AssertionError("unexpected POST")


def _configuration(tmp_path: Path, environ: dict[str, str] | None = None):
    fixtures_dir = tmp_path / "fixtures"
    fixtures_dir.mkdir()
    (fixtures_dir / "mock.yaml").write_text(
        """
apiVersion: v1
kind: ConfigMap
metadata:
  name: commerce-mock-settings
  namespace: {{ mock_namespace }}
data:
  eventMeshNamespace: "{{ event_mesh_namespace or '' }}"
""",
        encoding="utf-8",
    )
    (tmp_path / "service-key.json").write_text(
        json.dumps(
            {
                "management": {},
                "messaging": [],
                "namespace": "default/sap.kyma/tunas",
                "serviceinstanceid": "instance-1",
                "xsappname": "xsapp",
            }
        ),
        encoding="utf-8",
    )
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
cluster:
  kubeconfig: "initial-kubeconfig.yaml"
environment_broker:
  url: "https://keb.example.com"
fixtures:
  local_manifests_dir: "fixtures"
reachability:
  attempts: 2
  wait_seconds: 0
""",
        encoding="utf-8",
    )
    return load_configuration(config_path, environ or {})


def _run(
    tmp_path: Path,
    cluster: _FakeCluster,
    http: _FakeHttp,
    environ=None,
    *,
    kubeconfig_dir: Path | None = None,
):
    configuration = _configuration(tmp_path, environ)
    collaborators = build_collaborators(
        configuration,
        run_command=cluster,
        session=http,
        kubeconfig_dir=kubeconfig_dir,
    )
    return execute_preparation_run(configuration, collaborators)


def _statuses(outcome) -> dict[str, StepStatus]:
    return {result.name: result.status for result in outcome.step_results}


def test_local_run_prepares_every_enabled_step(tmp_path: Path) -> None:
    cluster = _FakeCluster()
    http = _FakeHttp()

    outcome = _run(tmp_path, cluster, http, {"EVENTMESH_SECRET_FILE": "service-key.json"})

    statuses = _statuses(outcome)
    assert list(statuses) == list(STEP_NAMES)
    assert outcome.failed is False
    assert statuses["Prepare SKR Kubeconfig if needed"] is StepStatus.SKIPPED
    assert statuses["Prepare assets with Compass flow"] is StepStatus.SKIPPED
    assert statuses["Prepare v1alpha2 subscriptions"] is StepStatus.SKIPPED
    assert outcome.count(StepStatus.PASSED) == 7
    assert cluster.created_kinds() == ["Secret", "ConfigMap"]
    assert "https://nats.example.com/jsz?streams=true" in http.urls


def test_event_mesh_namespace_reaches_mock_fixture(tmp_path: Path) -> None:
    cluster = _FakeCluster()

    _run(tmp_path, cluster, _FakeHttp(), {"EVENTMESH_SECRET_FILE": "service-key.json"})

    applied = [
        document
        for command, stdin in cluster.calls
        if _arguments(command)[0] == "apply"
        for document in yaml.safe_load_all(stdin or "")
    ]
    mock_settings = next(doc for doc in applied if doc["kind"] == "ConfigMap")
    assert mock_settings["data"]["eventMeshNamespace"] == "default/sap.kyma/tunas"


def test_ingress_rule_is_deleted_after_the_run(tmp_path: Path) -> None:
    cluster = _FakeCluster()

    _run(tmp_path, cluster, _FakeHttp())

    last_delete = cluster.commands("delete")[-1]
    assert _arguments(last_delete)[:5] == (
        "delete",
        "apirule",
        "eventing-nats-apirule",
        "-n",
        "kyma-system",
    )


def test_unreachable_sink_fails_step_runs_cleanup_and_continues(tmp_path: Path) -> None:
    cluster = _FakeCluster()
    http = _FakeHttp(sink_status=503)

    outcome = _run(tmp_path, cluster, http)

    statuses = _statuses(outcome)
    reachable_step = "Eventing-sink function should be reachable through API Rule"
    assert statuses[reachable_step] is StepStatus.FAILED
    assert statuses["Prepare v1alpha1 subscriptions"] is StepStatus.PASSED
    assert outcome.failed is True
    assert len([url for url in http.urls if url.startswith("https://sink.example.com")]) == 2
    deleted_kinds = [_arguments(command)[1] for command in cluster.commands("delete")]
    assert "subscriptions.v1alpha1.eventing.kyma-project.io" in deleted_kinds
    assert "functions" in deleted_kinds
    assert deleted_kinds[-1] == "apirule"


def test_ingress_failure_reports_every_step_failed(tmp_path: Path) -> None:
    cluster = _FakeCluster(fail_apply=True)

    outcome = _run(tmp_path, cluster, _FakeHttp())

    assert [result.status for result in outcome.step_results] == [StepStatus.FAILED] * len(
        STEP_NAMES
    )
    assert all("Unable to connect" in result.message for result in outcome.step_results)
    assert len(cluster.commands("apply")) == 1


def test_managed_cluster_run_removes_ingress_from_initial_cluster(tmp_path: Path) -> None:
    cluster = _FakeCluster()
    http = _FakeHttp()

    outcome = _run(
        tmp_path,
        cluster,
        http,
        {"KYMA_TYPE": "SKR", "INSTANCE_ID": "instance-1"},
        kubeconfig_dir=tmp_path / "kube",
    )

    assert _statuses(outcome)["Prepare SKR Kubeconfig if needed"] is StepStatus.PASSED
    assert "https://keb.example.com/kubeconfig/instance-1" in http.urls
    managed_kubeconfig = str(tmp_path / "kube" / "kubeconfig-instance-1.yaml")
    function_apply = cluster.commands("apply")[-2]
    assert function_apply[2] == managed_kubeconfig
    ingress_delete = cluster.commands("delete")[-1]
    assert ingress_delete[2] == str((tmp_path / "initial-kubeconfig.yaml").resolve())


def _record_mkdtemp(monkeypatch: pytest.MonkeyPatch, directory: Path) -> list[str]:
    created: list[str] = []

    def fake_mkdtemp(prefix: str = "") -> str:
        directory.mkdir()
        created.append(prefix)
        return str(directory)

    monkeypatch.setattr(tempfile, "mkdtemp", fake_mkdtemp)
    return created


def test_local_run_creates_no_kubeconfig_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    created = _record_mkdtemp(monkeypatch, tmp_path / "owned")

    _run(tmp_path, _FakeCluster(), _FakeHttp())

    assert created == []


def test_managed_run_removes_downloaded_kubeconfig_after_the_run(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    owned_dir = tmp_path / "owned"
    created = _record_mkdtemp(monkeypatch, owned_dir)
    cluster = _FakeCluster()

    outcome = _run(
        tmp_path, cluster, _FakeHttp(), {"KYMA_TYPE": "SKR", "INSTANCE_ID": "instance-1"}
    )

    assert _statuses(outcome)["Prepare SKR Kubeconfig if needed"] is StepStatus.PASSED
    assert created == ["eventing-test-prep-"]
    assert cluster.commands("apply")[-2][2] == str(owned_dir / "kubeconfig-instance-1.yaml")
    assert not owned_dir.exists()
