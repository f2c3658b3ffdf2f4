"""One-shot creation of the backend credential Secret and test-data ConfigMaps."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from eventing_test_prep.errors import ConflictError

from .kubectl_client import KubectlClient
from .resource_manifests import EVENTING_BACKEND_LABEL, build_config_map, build_secret

_LOGGER = logging.getLogger(__name__)

_STRUCTURED_SECRET_KEYS = ("management", "messaging")
_PLAIN_SECRET_KEYS = ("namespace", "serviceinstanceid", "xsappname")


class SecretFileError(Exception):
    """Raised when the backend service-key file cannot be used."""


@dataclass(frozen=True)
class ProvisionedSecret:
    """Backend credential Secret and the event mesh namespace it carries."""

    name: str
    namespace: str
    event_mesh_namespace: str
    created: bool


def create_backend_secret(
    kubectl: KubectlClient, secret_file: Path, name: str, namespace: str
) -> ProvisionedSecret:
    """Create the eventing backend Secret from a service-key file unless it already exists."""
    service_key = _read_service_key(secret_file)
    string_data = {key: json.dumps(service_key[key]) for key in _STRUCTURED_SECRET_KEYS}
    string_data.update({key: str(service_key[key]) for key in _PLAIN_SECRET_KEYS})
    label_key, label_value = EVENTING_BACKEND_LABEL
    manifest = build_secret(name, namespace, string_data, labels={label_key: label_value})

    created = _create_if_absent(kubectl, manifest)
    return ProvisionedSecret(
        name=name,
        namespace=namespace,
        event_mesh_namespace=string_data["namespace"],
        created=created,
    )


def create_config_map(
    kubectl: KubectlClient, payload: Mapping[str, str], name: str, namespace: str
) -> bool:
    """Create the ConfigMap once; an existing ConfigMap is left untouched."""
    return _create_if_absent(kubectl, build_config_map(name, namespace, payload))


def _create_if_absent(kubectl: KubectlClient, manifest: Mapping[str, Any]) -> bool:
    try:
        kubectl.create(manifest)
    except ConflictError as exc:
        _LOGGER.info("%s, keeping the existing resource", exc)
        return False
    return True


def _read_service_key(secret_file: Path) -> Mapping[str, Any]:
    try:
        document = json.loads(secret_file.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise SecretFileError(f"Event mesh secret file not found: {secret_file}") from exc
    except json.JSONDecodeError as exc:
        raise SecretFileError(f"Event mesh secret file is not valid JSON: {exc}") from exc
    if not isinstance(document, Mapping):
        raise SecretFileError("Event mesh secret file root must be an object.")
    missing = [
        key for key in _STRUCTURED_SECRET_KEYS + _PLAIN_SECRET_KEYS if document.get(key) is None
    ]
    if missing:
        raise SecretFileError(
            "Event mesh secret file is missing keys: " + ", ".join(missing) + "."
        )
    return document
