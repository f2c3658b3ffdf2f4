"""Managed (SKR) cluster kubeconfig retrieval from the environment broker."""

from __future__ import annotations

import logging
from pathlib import Path

import requests

from eventing_test_prep.errors import TransientNetworkError
from eventing_test_prep.http_transport import HttpSession

from .kubectl_client import KubectlClient

_LOGGER = logging.getLogger(__name__)


class KubeconfigFetchError(TransientNetworkError):
    """Raised when the environment broker does not return a kubeconfig."""


def fetch_managed_kubeconfig(
    session: HttpSession,
    broker_url: str,
    instance_id: str,
    *,
    token: str | None = None,
    timeout_seconds: int = 30,
) -> str:
    url = f"{broker_url.rstrip('/')}/kubeconfig/{instance_id}"
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    try:
        response = session.get(url, headers=headers, timeout=timeout_seconds)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise KubeconfigFetchError(
            f"Fetching kubeconfig for instance {instance_id} failed: {exc}"
        ) from exc
    if not response.text.strip():
        raise KubeconfigFetchError(f"Empty kubeconfig returned for instance {instance_id}.")
    return response.text


def prepare_managed_kubeconfig(
    kubectl: KubectlClient,
    session: HttpSession,
    broker_url: str,
    instance_id: str,
    destination_dir: Path,
    *,
    token: str | None = None,
    timeout_seconds: int = 30,
) -> Path:
    """Fetch the managed cluster kubeconfig, store it, and switch kubectl to it."""
    _LOGGER.debug("fetching managed cluster kubeconfig for instance id %s", instance_id)
    kubeconfig_text = fetch_managed_kubeconfig(
        session,
        broker_url,
        instance_id,
        token=token,
        timeout_seconds=timeout_seconds,
    )
    destination_dir.mkdir(parents=True, exist_ok=True)
    kubeconfig_path = destination_dir / f"kubeconfig-{instance_id}.yaml"
    kubeconfig_path.write_text(kubeconfig_text, encoding="utf-8")
    kubeconfig_path.chmod(0o600)
    kubectl.switch_kubeconfig(kubeconfig_path)
    return kubeconfig_path
