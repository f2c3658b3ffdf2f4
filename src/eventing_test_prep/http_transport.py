"""HTTP session contract shared by the broker, registry and reachability adapters."""

from __future__ import annotations

from typing import Any, Protocol

import requests
import urllib3


class HttpSession(Protocol):
    """Subset of ``requests.Session`` used by the HTTP adapters."""

    def get(self, url: str, **kwargs: Any) -> requests.Response: ...

    def post(self, url: str, **kwargs: Any) -> requests.Response: ...


def build_http_session() -> requests.Session:
    """Session for cluster endpoints served with self-signed certificates."""
    urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
    session = requests.Session()
    session.headers.update({"User-Agent": "eventing-test-prep"})
    return session
