"""Broker introspection exports."""

from .stream_snapshot import BrokerRequestError, StreamInfo, get_stream_snapshot

__all__ = ["BrokerRequestError", "StreamInfo", "get_stream_snapshot"]
