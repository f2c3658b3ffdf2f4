"""Mock application fixture rendering and deployment."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import jinja2
import yaml

from eventing_test_prep.cluster_resources.kubectl_client import KubectlClient

_LOGGER = logging.getLogger(__name__)

MANIFEST_PATTERNS = ("*.yaml", "*.yml", "*.yaml.j2")
ROLLOUT_TIMEOUT_SECONDS = 300


class FixtureDeploymentError(Exception):
    """Raised when the fixture manifests cannot be rendered."""


@dataclass(frozen=True)
class FixtureContext:  # pylint: disable=too-many-instance-attributes
    """Values available to the fixture manifest templates."""

    mock_namespace: str
    test_namespace: str
    app_name: str
    test_subscription_v1alpha2: bool
    event_mesh_namespace: str | None = None
    scenario_name: str | None = None
    runtime_id: str | None = None
    scenario_preexisting: bool = False


def render_fixture_manifests(manifests_dir: Path, context: FixtureContext) -> list[dict[str, Any]]:
    """Render every manifest template in the directory, in file-name order."""
    if not manifests_dir.is_dir():
        raise FixtureDeploymentError(f"Fixture manifests directory not found: {manifests_dir}")
    template_names = sorted(
        {path.name for pattern in MANIFEST_PATTERNS for path in manifests_dir.glob(pattern)}
    )
    if not template_names:
        raise FixtureDeploymentError(f"No fixture manifests found in {manifests_dir}")

    environment = jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(manifests_dir)),
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    variables = asdict(context)
    manifests: list[dict[str, Any]] = []
    for template_name in template_names:
        try:
            rendered = environment.get_template(template_name).render(**variables)
            documents = list(yaml.safe_load_all(rendered))
        except jinja2.TemplateError as exc:
            raise FixtureDeploymentError(f"Cannot render {template_name}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise FixtureDeploymentError(f"Rendered {template_name} is not YAML: {exc}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise FixtureDeploymentError(f"Cannot read {template_name}: {exc}") from exc
        for document in documents:
            if document is None:
                continue
            if not isinstance(document, dict) or "kind" not in document:
                raise FixtureDeploymentError(f"{template_name} contains a non-resource document.")
            manifests.append(document)
    return manifests


class MockFixtureDeployer:
    """Applies mock application manifests and remembers them for cleanup."""

    def __init__(
        self,
        kubectl: KubectlClient,
        *,
        rollout_timeout_seconds: int = ROLLOUT_TIMEOUT_SECONDS,
    ) -> None:
        self._kubectl = kubectl
        self._rollout_timeout_seconds = rollout_timeout_seconds
        self._deployed: list[dict[str, Any]] = []

    @property
    def deployed_manifests(self) -> tuple[dict[str, Any], ...]:
        return tuple(self._deployed)

    def deploy(self, manifests_dir: Path, context: FixtureContext) -> None:
        manifests = render_fixture_manifests(manifests_dir, context)
        self._remember(manifests)
        _LOGGER.debug("applying %d fixture manifests from %s", len(manifests), manifests_dir)
        self._kubectl.apply(manifests)
        for manifest in manifests:
            if manifest.get("kind") != "Deployment":
                continue
            metadata = manifest.get("metadata") or {}
            self._kubectl.wait(
                "deployment",
                str(metadata.get("name")),
                str(metadata.get("namespace") or context.mock_namespace),
                condition="Available",
                timeout_seconds=self._rollout_timeout_seconds,
            )

    def remove(self) -> None:
        if not self._deployed:
            return
        self._kubectl.delete_manifests(list(reversed(self._deployed)))
        self._deployed.clear()

    def _remember(self, manifests: list[dict[str, Any]]) -> None:
        for manifest in manifests:
            if manifest not in self._deployed:
                self._deployed.append(manifest)
