"""Configuration domain exports."""

from .config_scaffold_builder import (
    DEFAULT_CONFIG_FILENAME,
    build_placeholder_configuration,
    write_placeholder_configuration,
)
from .loader import ConfigurationError, load_configuration
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

__all__ = [
    "RunConfiguration",
    "NamespaceSettings",
    "ClusterSettings",
    "EventingSettings",
    "CompassSettings",
    "EnvironmentBrokerSettings",
    "FixtureSettings",
    "ReachabilitySettings",
    "RunSettings",
    "ConfigurationError",
    "load_configuration",
    "DEFAULT_CONFIG_FILENAME",
    "build_placeholder_configuration",
    "write_placeholder_configuration",
]
