"""GraphQL client for the Compass director."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests

from eventing_test_prep.errors import ConflictError, TransientNetworkError
from eventing_test_prep.http_transport import HttpSession

_LOGGER = logging.getLogger(__name__)

_CONFLICT_MARKERS = ("already exist", "not unique")


class RegistryRequestError(TransientNetworkError):
    """Raised when a director request fails or returns GraphQL errors."""


class DirectorClient:
    """Sends GraphQL documents to the director with a bearer token."""

    def __init__(
        self,
        session: HttpSession,
        director_url: str,
        token: str,
        *,
        timeout_seconds: int = 30,
    ) -> None:
        self._session = session
        self._director_url = director_url
        self._token = token
        self._timeout_seconds = timeout_seconds

    def execute(self, query: str, variables: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run one GraphQL document and return its ``data`` object.

        Raises:
          ConflictError: If the director reports that the target already exists.
          RegistryRequestError: On transport failures or any other GraphQL error.
        """
        payload = {"query": query, "variables": dict(variables or {})}
        try:
            response = self._session.post(
                self._director_url,
                json=payload,
                headers={"Authorization": f"Bearer {self._token}"},
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            document = response.json()
        except requests.RequestException as exc:
            raise RegistryRequestError(f"Director request failed: {exc}") from exc
        except ValueError as exc:
            raise RegistryRequestError(f"Director returned invalid JSON: {exc}") from exc

        if not isinstance(document, Mapping):
            raise RegistryRequestError("Director response root must be an object.")
        errors = document.get("errors") or []
        if errors:
            message = "; ".join(_error_message(error) for error in errors)
            if any(marker in message.lower() for marker in _CONFLICT_MARKERS):
                raise ConflictError(message)
            raise RegistryRequestError(f"Director returned errors: {message}")
        data = document.get("data")
        if not isinstance(data, Mapping):
            raise RegistryRequestError("Director response has no data object.")
        return dict(data)


def _error_message(error: Any) -> str:
    if isinstance(error, Mapping):
        return str(error.get("message", error))
    return str(error)
