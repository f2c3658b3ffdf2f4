"""Scenario and runtime-association queries against the director."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from .director_client import RegistryRequestError

SCENARIOS_LABEL = "scenarios"
FORMATIONS_PAGE_SIZE = 100

_FORMATIONS_QUERY = """
query Formations($first: Int, $after: PageCursor) {
  formations(first: $first, after: $after) {
    data { name }
    pageInfo { hasNextPage endCursor }
  }
}
"""

_CREATE_FORMATION_MUTATION = """
mutation CreateFormation($name: String!) {
  createFormation(formation: {name: $name}) { name }
}
"""

_RUNTIME_LABELS_QUERY = """
query RuntimeLabels($id: ID!) {
  runtime(id: $id) { id labels }
}
"""

_ASSIGN_FORMATION_MUTATION = """
mutation AssignFormation($id: String!, $name: String!) {
  assignFormation(objectID: $id, objectType: RUNTIME, formation: {name: $name}) { name }
}
"""


class RegistryClient(Protocol):  # pylint: disable=too-few-public-methods
    """Protocol implemented by the director client and test fakes."""

    def execute(
        self, query: str, variables: Mapping[str, Any] | None = None
    ) -> dict[str, Any]: ...


def scenario_exists(client: RegistryClient, scenario_name: str) -> bool:
    after: str | None = None
    while True:
        data = client.execute(_FORMATIONS_QUERY, {"first": FORMATIONS_PAGE_SIZE, "after": after})
        page = _require_mapping(data.get("formations"), "formations")
        names = {
            item.get("name") for item in page.get("data") or [] if isinstance(item, Mapping)
        }
        if scenario_name in names:
            return True
        page_info = page.get("pageInfo") or {}
        if not page_info.get("hasNextPage"):
            return False
        end_cursor = page_info.get("endCursor")
        if not end_cursor or end_cursor == after:
            raise RegistryRequestError(
                f"Director reported another formations page without advancing the cursor "
                f"(endCursor={end_cursor!r})."
            )
        after = end_cursor


def add_scenario(client: RegistryClient, scenario_name: str) -> None:
    """Create the scenario; raises ConflictError when it already exists."""
    client.execute(_CREATE_FORMATION_MUTATION, {"name": scenario_name})


def is_runtime_assigned(client: RegistryClient, runtime_id: str, scenario_name: str) -> bool:
    data = client.execute(_RUNTIME_LABELS_QUERY, {"id": runtime_id})
    runtime = data.get("runtime")
    if runtime is None:
        raise RegistryRequestError(f"Runtime {runtime_id} is not registered in the director.")
    labels = _require_mapping(runtime, "runtime").get("labels") or {}
    scenarios = labels.get(SCENARIOS_LABEL) if isinstance(labels, Mapping) else None
    if isinstance(scenarios, str):
        return scenarios == scenario_name
    if isinstance(scenarios, Sequence):
        return scenario_name in scenarios
    return False


def assign_runtime(client: RegistryClient, runtime_id: str, scenario_name: str) -> None:
    """Associate the runtime with the scenario; raises ConflictError when already assigned."""
    client.execute(_ASSIGN_FORMATION_MUTATION, {"id": runtime_id, "name": scenario_name})


def _require_mapping(value: Any, field_name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise RegistryRequestError(f"Director response field '{field_name}' is malformed.")
    return value
