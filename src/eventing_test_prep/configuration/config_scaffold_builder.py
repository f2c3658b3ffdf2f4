"""Configuration scaffold generation helpers."""

from __future__ import annotations

from pathlib import Path

DEFAULT_CONFIG_FILENAME = "eventing-test-prep.yaml"

_CONFIG_SCAFFOLD_TEMPLATE = """# Run configuration template for eventing-test-prep.
# Every value below is optional unless marked <REQUIRED>.
# Environment variables (TEST_COMPASS_FLOW, KYMA_TYPE, INSTANCE_ID, SHOOT_NAME,
# EVENTMESH_SECRET_FILE, ...) override the values in this file.

namespaces:
  test: "test"
  mock: "mocks"

cluster:
  # kubeconfig: "<OPTIONAL>"
  kubectl_binary: "kubectl"
  kyma_version: "<OPTIONAL>"
  # Managed (SKR) clusters fetch their kubeconfig from the environment broker.
  is_managed: false
  # managed_instance_id: "<OPTIONAL>"
  # shoot_name: "<OPTIONAL>"
  command_timeout_seconds: 120

eventing:
  system_namespace: "kyma-system"
  nats_service_name: "eventing-nats"
  nats_monitoring_port: 8222
  stream_name: "sap"
  test_data_configmap_name: "eventing-test-data"
  backend_secret_name: "eventing-backend"
  backend_secret_namespace: "default"
  # Leave unset to reuse an existing backend secret.
  # event_mesh_secret_file: "<OPTIONAL>"
  sink_function_name: "eventing-sink"
  app_name: "eventing-test-app"
  test_subscription_v1alpha2: false
  subscription_crd_version: "v1alpha1"
  event_types:
    - "order.created.v1"

compass:
  # Choose exactly one asset preparation path: Compass flow or local fixtures.
  enabled: false
  # director_url: "<REQUIRED with Compass flow>"
  # token: "<REQUIRED with Compass flow>"
  scenario_name: "test-eventing"
  # gardener_kubeconfig: "<REQUIRED with Compass flow>"
  # gardener_namespace: "<REQUIRED with Compass flow>"

environment_broker:
  # url: "<REQUIRED for managed clusters with an instance id>"
  # token: "<OPTIONAL>"

fixtures:
  local_manifests_dir: "<REQUIRED without Compass flow>"
  # compass_manifests_dir: "<REQUIRED with Compass flow>"

reachability:
  attempts: 5
  wait_seconds: 5
  http_timeout_seconds: 30

run:
  timeout_seconds: 600
  slow_step_seconds: 5
"""


def build_placeholder_configuration() -> str:
    """Build a YAML run configuration template with placeholders and inline guidance."""
    return _CONFIG_SCAFFOLD_TEMPLATE


def write_placeholder_configuration(output_path: Path | str) -> Path:
    """Write the placeholder run configuration template to the requested output path.

    Args:
      output_path: Destination file path for the scaffold.

    Returns:
      The resolved destination path.

    Raises:
      FileExistsError: If the destination file already exists.
      OSError: If writing the scaffold fails.
    """
    destination = Path(output_path)
    if destination.exists():
        raise FileExistsError(f"Run configuration file already exists: {destination.resolve()}")
    destination.write_text(build_placeholder_configuration(), encoding="utf-8")
    return destination.resolve()
