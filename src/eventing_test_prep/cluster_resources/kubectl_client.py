"""kubectl-backed cluster client."""

from __future__ import annotations

import json
import logging
import shlex
import subprocess
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from eventing_test_prep.errors import ConflictError, TransientNetworkError

_LOGGER = logging.getLogger(__name__)

_ALREADY_EXISTS_MARKER = "AlreadyExists"
_NOT_FOUND_MARKER = "NotFound"


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one kubectl invocation."""

    returncode: int
    stdout: str
    stderr: str


CommandRunner = Callable[[tuple[str, ...], str | None, int], CommandResult]


class ClusterCommandError(TransientNetworkError):
    """Raised when a kubectl command cannot be run or exits with an error."""


class KubectlClient:
    """Thin wrapper that runs kubectl against one cluster."""

    def __init__(
        self,
        *,
        kubectl_binary: str = "kubectl",
        kubeconfig: Path | None = None,
        timeout_seconds: int = 120,
        run_command: CommandRunner | None = None,
    ) -> None:
        self._kubectl_binary = kubectl_binary
        self._kubeconfig = kubeconfig
        self._timeout_seconds = timeout_seconds
        self._run_command = run_command or _run_subprocess_command

    @property
    def kubeconfig(self) -> Path | None:
        return self._kubeconfig

    def switch_kubeconfig(self, kubeconfig: Path) -> None:
        """Point every following command at another cluster."""
        _LOGGER.debug("switching kubeconfig to %s", kubeconfig)
        self._kubeconfig = kubeconfig

    def clone(self) -> KubectlClient:
        """Return a client pinned to the current cluster, unaffected by later switches."""
        return KubectlClient(
            kubectl_binary=self._kubectl_binary,
            kubeconfig=self._kubeconfig,
            timeout_seconds=self._timeout_seconds,
            run_command=self._run_command,
        )

    def create(self, manifest: Mapping[str, Any]) -> dict[str, Any]:
        """Create a resource, raising ConflictError when it already exists."""
        result = self._run(("create", "-o", "json", "-f", "-"), stdin=_to_yaml([manifest]))
        if result.returncode != 0:
            if _ALREADY_EXISTS_MARKER in result.stderr:
                raise ConflictError(
                    f"{manifest.get('kind')} '{_manifest_name(manifest)}' already exists."
                )
            raise _command_error(("create",), result)
        return _parse_json(result.stdout)

    def apply(self, manifests: Sequence[Mapping[str, Any]]) -> None:
        """Create or update all manifests in one call."""
        if not manifests:
            return
        result = self._run(("apply", "-f", "-"), stdin=_to_yaml(manifests))
        if result.returncode != 0:
            raise _command_error(("apply",), result)

    def get(self, kind: str, name: str, namespace: str) -> dict[str, Any] | None:
        """Return the resource as a mapping, or None when it does not exist."""
        arguments = ("get", kind, name, "-n", namespace, "-o", "json")
        result = self._run(arguments)
        if result.returncode != 0:
            if _NOT_FOUND_MARKER in result.stderr:
                return None
            raise _command_error(arguments, result)
        return _parse_json(result.stdout)

    def list_by_label(
        self, kind: str, namespace: str, *, label_selector: str
    ) -> list[dict[str, Any]]:
        arguments = ("get", kind, "-n", namespace, "-l", label_selector, "-o", "json")
        result = self._run(arguments)
        if result.returncode != 0:
            raise _command_error(arguments, result)
        items = _parse_json(result.stdout).get("items") or []
        return [item for item in items if isinstance(item, dict)]

    def delete(self, kind: str, name: str, namespace: str) -> None:
        arguments = ("delete", kind, name, "-n", namespace, "--ignore-not-found")
        result = self._run(arguments)
        if result.returncode != 0:
            raise _command_error(arguments, result)

    def delete_each(self, targets: Sequence[tuple[str, str, str]]) -> None:
        """Delete every (kind, name, namespace) target, then raise one error for all failures."""
        failures = []
        for kind, name, namespace in targets:
            try:
                self.delete(kind, name, namespace)
            except ClusterCommandError as exc:
                _LOGGER.warning("deleting %s %s/%s failed: %s", kind, namespace, name, exc)
                failures.append(str(exc))
        if failures:
            raise ClusterCommandError(
                f"{len(failures)} of {len(targets)} deletions failed: " + "; ".join(failures)
            )

    def delete_manifests(self, manifests: Sequence[Mapping[str, Any]]) -> None:
        if not manifests:
            return
        result = self._run(
            ("delete", "--ignore-not-found", "-f", "-"), stdin=_to_yaml(manifests)
        )
        if result.returncode != 0:
            raise _command_error(("delete",), result)

    def wait(
        self,
        kind: str,
        name: str,
        namespace: str,
        *,
        condition: str,
        timeout_seconds: int,
    ) -> None:
        """Block until the resource reports the condition or kubectl gives up."""
        arguments = (
            "wait",
            f"{kind}/{name}",
            "-n",
            namespace,
            f"--for=condition={condition}",
            f"--timeout={timeout_seconds}s",
        )
        result = self._run(arguments, timeout_seconds=timeout_seconds + self._timeout_seconds)
        if result.returncode != 0:
            raise _command_error(arguments, result)

    def _run(
        self,
        arguments: tuple[str, ...],
        *,
        stdin: str | None = None,
        timeout_seconds: int | None = None,
    ) -> CommandResult:
        command: tuple[str, ...] = (self._kubectl_binary,)
        if self._kubeconfig is not None:
            command += ("--kubeconfig", str(self._kubeconfig))
        command += arguments
        _LOGGER.debug("running %s", shlex.join(command))
        return self._run_command(command, stdin, timeout_seconds or self._timeout_seconds)


def _run_subprocess_command(
    command: tuple[str, ...], stdin: str | None, timeout_seconds: int
) -> CommandResult:
    """Run one kubectl command and wrap subprocess errors with domain-friendly messages."""
    try:
        completed = subprocess.run(
            list(command),
            input=stdin,
            capture_output=True,
            text=True,
            timeout=timeout_seconds,
            check=False,
        )
    except FileNotFoundError as exc:
        raise ClusterCommandError(f"Cluster command not found: {shlex.join(command)}") from exc
    except subprocess.TimeoutExpired as exc:
        raise ClusterCommandError(
            f"Cluster command timed out after {timeout_seconds}s: {shlex.join(command)}"
        ) from exc
    return CommandResult(
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )


def _command_error(arguments: tuple[str, ...], result: CommandResult) -> ClusterCommandError:
    detail = result.stderr.strip() or result.stdout.strip() or "no output"
    return ClusterCommandError(
        f"kubectl {' '.join(arguments)} failed with exit code {result.returncode}: {detail}"
    )


def _to_yaml(manifests: Sequence[Mapping[str, Any]]) -> str:
    return yaml.safe_dump_all([dict(manifest) for manifest in manifests], sort_keys=False)


def _parse_json(text: str) -> dict[str, Any]:
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ClusterCommandError(f"kubectl returned invalid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise ClusterCommandError("kubectl returned a non-object JSON document.")
    return parsed


def _manifest_name(manifest: Mapping[str, Any]) -> str:
    metadata = manifest.get("metadata") or {}
    return str(metadata.get("name", ""))
