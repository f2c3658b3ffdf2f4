"""Failure taxonomy shared by the preparation domains."""

from __future__ import annotations


class TransientNetworkError(Exception):
    """Raised when a cluster, broker or registry call fails."""


class ConflictError(Exception):
    """Raised when a create-if-absent target already exists."""


class ReachabilityTimeoutError(TimeoutError):
    """Raised when a reachability check exhausts its retry budget."""
