"""Best-effort removal of the resources created by a preparation run."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from eventing_test_prep.errors import TransientNetworkError

_LOGGER = logging.getLogger(__name__)


class TestingResourceCleaner:  # pylint: disable=too-few-public-methods
    """Runs every registered removal, logging failures instead of raising them."""

    __test__ = False

    def __init__(self, removals: Sequence[tuple[str, Callable[[], None]]]) -> None:
        self._removals = tuple(removals)

    def cleanup_all(self) -> list[str]:
        """Return the names of the removals that failed."""
        _LOGGER.info("cleaning up testing resources")
        failed: list[str] = []
        for name, removal in self._removals:
            try:
                removal()
            except TransientNetworkError as exc:
                _LOGGER.warning("cleanup of %s failed: %s", name, exc)
                failed.append(name)
        return failed
