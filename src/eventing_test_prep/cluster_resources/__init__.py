"""Cluster resource exports."""

from .credential_provisioner import (
    ProvisionedSecret,
    SecretFileError,
    create_backend_secret,
    create_config_map,
)
from .ingress_exposer import (
    IngressRule,
    ServiceHostNotFoundError,
    create_ingress_rule,
    delete_ingress_rule,
    get_service_host,
)
from .kubectl_client import ClusterCommandError, CommandResult, KubectlClient
from .managed_kubeconfig import (
    KubeconfigFetchError,
    fetch_managed_kubeconfig,
    prepare_managed_kubeconfig,
)

__all__ = [
    "KubectlClient",
    "CommandResult",
    "ClusterCommandError",
    "IngressRule",
    "ServiceHostNotFoundError",
    "create_ingress_rule",
    "delete_ingress_rule",
    "get_service_host",
    "ProvisionedSecret",
    "SecretFileError",
    "create_backend_secret",
    "create_config_map",
    "KubeconfigFetchError",
    "fetch_managed_kubeconfig",
    "prepare_managed_kubeconfig",
]
