"""Configuration loader service."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from .runtime_settings import (
    ClusterSettings,
    CompassSettings,
    EnvironmentBrokerSettings,
    EventingSettings,
    FixtureSettings,
    NamespaceSettings,
    ReachabilitySettings,
    RunConfiguration,
    RunSettings,
)

MANAGED_CLUSTER_TYPE = "SKR"

# Environment variable -> (section, key) applied on top of the file contents.
_ENVIRONMENT_OVERRIDES: tuple[tuple[str, str, str], ...] = (
    ("MOCK_NAMESPACE", "namespaces", "mock"),
    ("KUBECONFIG", "cluster", "kubeconfig"),
    ("KYMA_VERSION", "cluster", "kyma_version"),
    ("INSTANCE_ID", "cluster", "managed_instance_id"),
    ("SHOOT_NAME", "cluster", "shoot_name"),
    ("EVENTMESH_SECRET_FILE", "eventing", "event_mesh_secret_file"),
    ("BACKEND_SECRET_NAME", "eventing", "backend_secret_name"),
    ("BACKEND_SECRET_NAMESPACE", "eventing", "backend_secret_namespace"),
    ("ENABLE_SUBSCRIPTION_V1_ALPHA2", "eventing", "test_subscription_v1alpha2"),
    ("SUBSCRIPTION_CRD_VERSION", "eventing", "subscription_crd_version"),
    ("TEST_COMPASS_FLOW", "compass", "enabled"),
    ("COMPASS_DIRECTOR_URL", "compass", "director_url"),
    ("COMPASS_TOKEN", "compass", "token"),
    ("GARDENER_KUBECONFIG", "compass", "gardener_kubeconfig"),
    ("GARDENER_NAMESPACE", "compass", "gardener_namespace"),
    ("KEB_URL", "environment_broker", "url"),
    ("KEB_TOKEN", "environment_broker", "token"),
)

_TRUE_STRINGS = frozenset({"true", "yes", "1", "on"})
_FALSE_STRINGS = frozenset({"false", "no", "0", "off", ""})


class ConfigurationError(Exception):
    """Raised when the configuration file is invalid."""


def load_configuration(
    config_path: Path | str | None,
    environ: Mapping[str, str] | None = None,
) -> RunConfiguration:
    """Load, override from the environment, and validate the run configuration.

    Args:
      config_path: YAML configuration file, or None to rely on defaults and
        environment overrides only.
      environ: Environment variables to apply as overrides.

    Returns:
      The immutable run configuration.

    Raises:
      ConfigurationError: If the file is missing, unparsable or invalid.
    """
    path = Path(config_path) if config_path is not None else None
    parsed = _read_configuration_document(path) if path is not None else {}
    merged = _apply_environment_overrides(parsed, environ or {})
    base_path = path.parent if path is not None else Path.cwd()

    namespaces = _parse_namespaces_section(merged.get("namespaces"))
    cluster = _parse_cluster_section(merged.get("cluster"), base_path)
    eventing = _parse_eventing_section(merged.get("eventing"), base_path)
    compass = _parse_compass_section(merged.get("compass"), base_path)
    environment_broker = _parse_environment_broker_section(merged.get("environment_broker"))
    fixtures = _parse_fixtures_section(merged.get("fixtures"), base_path)
    reachability = _parse_reachability_section(merged.get("reachability"))
    run = _parse_run_section(merged.get("run"))

    configuration = RunConfiguration(
        path=path,
        namespaces=namespaces,
        cluster=cluster,
        eventing=eventing,
        compass=compass,
        environment_broker=environment_broker,
        fixtures=fixtures,
        reachability=reachability,
        run=run,
    )
    _validate_cross_section_requirements(configuration)
    return configuration


def _read_configuration_document(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as exc:  # pragma: no cover - exercised indirectly
        raise ConfigurationError(f"Failed to parse configuration file: {exc}") from exc

    if parsed is None:
        parsed = {}

    if not isinstance(parsed, Mapping):
        raise ConfigurationError("Configuration root must be a mapping.")
    return parsed


def _apply_environment_overrides(
    parsed: Mapping[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    for section_name, section in parsed.items():
        if section is not None and not isinstance(section, Mapping):
            raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
        merged[section_name] = dict(section or {})

    for variable, section_name, key in _ENVIRONMENT_OVERRIDES:
        if variable in environ:
            merged.setdefault(section_name, {})[key] = environ[variable]

    kyma_type = environ.get("KYMA_TYPE")
    if kyma_type is not None:
        merged.setdefault("cluster", {})["is_managed"] = (
            kyma_type.strip().upper() == MANAGED_CLUSTER_TYPE
        )
    return merged


def _parse_namespaces_section(value: Any) -> NamespaceSettings:
    section = _optional_mapping(value, "namespaces")
    return NamespaceSettings(
        test=_require_non_empty_string(section.get("test", "test"), "namespaces.test"),
        mock=_require_non_empty_string(section.get("mock", "mocks"), "namespaces.mock"),
    )


def _parse_cluster_section(value: Any, base_path: Path) -> ClusterSettings:
    section = _optional_mapping(value, "cluster")
    return ClusterSettings(
        kubeconfig=_optional_path(section.get("kubeconfig"), "cluster.kubeconfig", base_path),
        kubectl_binary=_require_non_empty_string(
            section.get("kubectl_binary", "kubectl"), "cluster.kubectl_binary"
        ),
        kyma_version=_optional_string(section.get("kyma_version"), "cluster.kyma_version") or "",
        is_managed=_require_bool(section.get("is_managed", False), "cluster.is_managed"),
        managed_instance_id=_optional_string(
            section.get("managed_instance_id"), "cluster.managed_instance_id"
        ),
        shoot_name=_optional_string(section.get("shoot_name"), "cluster.shoot_name"),
        command_timeout_seconds=_require_positive_int(
            section.get("command_timeout_seconds", 120), "cluster.command_timeout_seconds"
        ),
    )


def _parse_eventing_section(value: Any, base_path: Path) -> EventingSettings:
    section = _optional_mapping(value, "eventing")
    nats_service_name = _require_non_empty_string(
        section.get("nats_service_name", "eventing-nats"), "eventing.nats_service_name"
    )
    return EventingSettings(
        system_namespace=_require_non_empty_string(
            section.get("system_namespace", "kyma-system"), "eventing.system_namespace"
        ),
        nats_service_name=nats_service_name,
        nats_monitoring_port=_require_positive_int(
            section.get("nats_monitoring_port", 8222), "eventing.nats_monitoring_port"
        ),
        nats_api_rule_name=_require_non_empty_string(
            section.get("nats_api_rule_name", f"{nats_service_name}-apirule"),
            "eventing.nats_api_rule_name",
        ),
        stream_name=_require_non_empty_string(
            section.get("stream_name", "sap"), "eventing.stream_name"
        ),
        test_data_configmap_name=_require_non_empty_string(
            section.get("test_data_configmap_name", "eventing-test-data"),
            "eventing.test_data_configmap_name",
        ),
        test_data_configmap_namespace=_require_non_empty_string(
            section.get("test_data_configmap_namespace", "default"),
            "eventing.test_data_configmap_namespace",
        ),
        backend_secret_name=_require_non_empty_string(
            section.get("backend_secret_name", "eventing-backend"),
            "eventing.backend_secret_name",
        ),
        backend_secret_namespace=_require_non_empty_string(
            section.get("backend_secret_namespace", "default"),
            "eventing.backend_secret_namespace",
        ),
        event_mesh_secret_file=_optional_path(
            section.get("event_mesh_secret_file"), "eventing.event_mesh_secret_file", base_path
        ),
        sink_function_name=_require_non_empty_string(
            section.get("sink_function_name", "eventing-sink"), "eventing.sink_function_name"
        ),
        app_name=_require_non_empty_string(
            section.get("app_name", "eventing-test-app"), "eventing.app_name"
        ),
        test_subscription_v1alpha2=_require_bool(
            section.get("test_subscription_v1alpha2", False),
            "eventing.test_subscription_v1alpha2",
        ),
        subscription_crd_version=_require_non_empty_string(
            section.get("subscription_crd_version", "v1alpha1"),
            "eventing.subscription_crd_version",
        ),
        event_types=_normalize_string_sequence(
            section.get("event_types", ("order.created.v1",)), "eventing.event_types"
        ),
    )


def _parse_compass_section(value: Any, base_path: Path) -> CompassSettings:
    section = _optional_mapping(value, "compass")
    return CompassSettings(
        enabled=_require_bool(section.get("enabled", False), "compass.enabled"),
        director_url=_optional_string(section.get("director_url"), "compass.director_url"),
        token=_optional_string(section.get("token"), "compass.token"),
        scenario_name=_require_non_empty_string(
            section.get("scenario_name", "test-eventing"), "compass.scenario_name"
        ),
        gardener_kubeconfig=_optional_path(
            section.get("gardener_kubeconfig"), "compass.gardener_kubeconfig", base_path
        ),
        gardener_namespace=_optional_string(
            section.get("gardener_namespace"), "compass.gardener_namespace"
        ),
    )


def _parse_environment_broker_section(value: Any) -> EnvironmentBrokerSettings:
    section = _optional_mapping(value, "environment_broker")
    return EnvironmentBrokerSettings(
        url=_optional_string(section.get("url"), "environment_broker.url"),
        token=_optional_string(section.get("token"), "environment_broker.token"),
    )


def _parse_fixtures_section(value: Any, base_path: Path) -> FixtureSettings:
    section = _optional_mapping(value, "fixtures")
    return FixtureSettings(
        local_manifests_dir=_optional_path(
            section.get("local_manifests_dir"), "fixtures.local_manifests_dir", base_path
        ),
        compass_manifests_dir=_optional_path(
            section.get("compass_manifests_dir"), "fixtures.compass_manifests_dir", base_path
        ),
    )


def _parse_reachability_section(value: Any) -> ReachabilitySettings:
    section = _optional_mapping(value, "reachability")
    wait_seconds = section.get("wait_seconds", 5)
    if isinstance(wait_seconds, bool) or not isinstance(wait_seconds, int | float):
        raise ConfigurationError("reachability.wait_seconds must be a number.")
    if wait_seconds < 0:
        raise ConfigurationError("reachability.wait_seconds must not be negative.")
    return ReachabilitySettings(
        attempts=_require_positive_int(section.get("attempts", 5), "reachability.attempts"),
        wait_seconds=float(wait_seconds),
        http_timeout_seconds=_require_positive_int(
            section.get("http_timeout_seconds", 30), "reachability.http_timeout_seconds"
        ),
    )


def _parse_run_section(value: Any) -> RunSettings:
    section = _optional_mapping(value, "run")
    return RunSettings(
        timeout_seconds=_require_positive_int(
            section.get("timeout_seconds", 600), "run.timeout_seconds"
        ),
        slow_step_seconds=_require_positive_int(
            section.get("slow_step_seconds", 5), "run.slow_step_seconds"
        ),
    )


def _validate_cross_section_requirements(configuration: RunConfiguration) -> None:
    compass = configuration.compass
    if compass.enabled:
        missing = [
            label
            for label, present in (
                ("compass.director_url", compass.director_url),
                ("compass.token", compass.token),
                ("compass.gardener_kubeconfig", compass.gardener_kubeconfig),
                ("compass.gardener_namespace", compass.gardener_namespace),
                ("cluster.shoot_name", configuration.cluster.shoot_name),
                ("fixtures.compass_manifests_dir", configuration.fixtures.compass_manifests_dir),
            )
            if not present
        ]
        if missing:
            raise ConfigurationError("Compass flow requires: " + ", ".join(missing) + ".")
    elif configuration.fixtures.local_manifests_dir is None:
        raise ConfigurationError("fixtures.local_manifests_dir is required without Compass flow.")

    cluster = configuration.cluster
    needs_kubeconfig_fetch = cluster.is_managed and cluster.managed_instance_id is not None
    if needs_kubeconfig_fetch and not configuration.environment_broker.url:
        raise ConfigurationError(
            "environment_broker.url is required to fetch the managed cluster kubeconfig."
        )


def _normalize_string_sequence(value: Any, field_name: str) -> tuple[str, ...]:
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",")]
    elif isinstance(value, Sequence):
        items = []
        for item in value:
            if not isinstance(item, str):
                raise ConfigurationError(f"{field_name} entries must be strings.")
            items.append(item.strip())
    else:
        raise ConfigurationError(f"{field_name} must be a string or list of strings.")
    normalized = tuple(item for item in items if item)
    if not normalized:
        raise ConfigurationError(f"{field_name} must contain at least one entry.")
    return normalized


def _resolve_path(base_path: Path, raw_path: str) -> Path:
    candidate = Path(raw_path).expanduser()
    if not candidate.is_absolute():
        return (base_path / candidate).resolve()
    return candidate


def _optional_mapping(value: Any, section_name: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigurationError(f"Configuration section '{section_name}' must be a mapping.")
    return value


def _optional_path(value: Any, field_name: str, base_path: Path) -> Path | None:
    raw = _optional_string(value, field_name)
    if raw is None:
        return None
    return _resolve_path(base_path, raw)


def _require_non_empty_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    if not stripped:
        raise ConfigurationError(f"{field_name} must not be empty.")
    return stripped


def _optional_string(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigurationError(f"{field_name} must be a string.")
    stripped = value.strip()
    return stripped or None


def _require_bool(value: Any, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ConfigurationError(f"{field_name} must be a boolean.")


def _require_positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int):
        raise ConfigurationError(f"{field_name} must be an integer.")
    if value <= 0:
        raise ConfigurationError(f"{field_name} must be greater than zero.")
    return value
