"""Sink function and subscription deployment exports."""

from .sink_function import (
    SinkFunctionDeployer,
    SinkUnreachableError,
    check_reachable,
    wait_until_reachable,
)
from .subscriptions import SubscriptionDeployer

__all__ = [
    "SinkFunctionDeployer",
    "SinkUnreachableError",
    "SubscriptionDeployer",
    "check_reachable",
    "wait_until_reachable",
]
