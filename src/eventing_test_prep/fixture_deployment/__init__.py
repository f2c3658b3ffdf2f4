"""Mock fixture deployment exports."""

from .fixture_deployer import (
    FixtureContext,
    FixtureDeploymentError,
    MockFixtureDeployer,
    render_fixture_manifests,
)

__all__ = [
    "FixtureContext",
    "FixtureDeploymentError",
    "MockFixtureDeployer",
    "render_fixture_manifests",
]
