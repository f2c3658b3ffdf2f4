"""JetStream stream snapshot taken through the exposed NATS monitoring endpoint."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

import requests

from eventing_test_prep.errors import TransientNetworkError
from eventing_test_prep.http_transport import HttpSession

_LOGGER = logging.getLogger(__name__)

JETSTREAM_STREAMS_PATH = "/jsz?streams=true"


class BrokerRequestError(TransientNetworkError):
    """Raised when the monitoring endpoint cannot be queried."""


@dataclass(frozen=True)
class StreamInfo:
    """Baseline metadata of one JetStream stream."""

    stream_name: str
    stream_creation_time: str

    def as_config_map_data(self) -> dict[str, str]:
        return {
            "streamName": self.stream_name,
            "streamCreationTime": self.stream_creation_time,
        }


def get_stream_snapshot(
    session: HttpSession,
    host: str,
    stream_name: str,
    *,
    timeout_seconds: int = 30,
) -> StreamInfo | None:
    """Return the named stream's metadata, or None when the broker has no such stream."""
    url = f"https://{host}{JETSTREAM_STREAMS_PATH}"
    try:
        response = session.get(url, timeout=timeout_seconds, verify=False)
        response.raise_for_status()
        document = response.json()
    except requests.RequestException as exc:
        raise BrokerRequestError(f"Querying JetStream monitoring at {url} failed: {exc}") from exc
    except ValueError as exc:
        raise BrokerRequestError(f"JetStream monitoring returned invalid JSON: {exc}") from exc

    for stream in _iter_stream_details(document):
        if stream.get("name") == stream_name:
            return StreamInfo(
                stream_name=stream_name,
                stream_creation_time=str(stream.get("created", "")),
            )
    _LOGGER.debug("stream %s not reported by %s", stream_name, host)
    return None


def _iter_stream_details(document: Any) -> Iterator[Mapping[str, Any]]:
    if not isinstance(document, Mapping):
        return
    for account in document.get("account_details") or []:
        if not isinstance(account, Mapping):
            continue
        for stream in account.get("stream_detail") or []:
            if isinstance(stream, Mapping):
                yield stream
