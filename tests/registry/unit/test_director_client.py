"""Director GraphQL client tests."""

from __future__ import annotations

import json

import pytest
import requests
from eventing_test_prep.errors import ConflictError, TransientNetworkError
from eventing_test_prep.registry import DirectorClient, RegistryRequestError


def _response(status_code: int, document: object) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    response._content = json.dumps(document).encode("utf-8")  # pylint: disable=protected-access
    response.url = "https://director.example.com/graphql"
    return response


class _FakeSession:
    def __init__(self, response: requests.Response) -> None:
        self._response = response
        self.posts: list[tuple[str, dict]] = []

    def get(self, url: str, **kwargs) -> requests.Response:
        raise AssertionError("unexpected GET")

    def post(self, url: str, **kwargs) -> requests.Response:
        self.posts.append((url, kwargs))
        return self._response


def test_execute_posts_query_with_bearer_token() -> None:
    session = _FakeSession(_response(200, {"data": {"formations": {"data": []}}}))
    client = DirectorClient(
        session, "https://director.example.com/graphql", "t0ken", timeout_seconds=9
    )

    data = client.execute("query { formations { data { name } } }", {"first": 100})

    url, kwargs = session.posts[0]
    assert url == "https://director.example.com/graphql"
    assert kwargs["json"] == {
        "query": "query { formations { data { name } } }",
        "variables": {"first": 100},
    }
    assert kwargs["headers"] == {"Authorization": "Bearer t0ken"}
    assert kwargs["timeout"] == 9
    assert data == {"formations": {"data": []}}


def test_already_exists_error_maps_to_conflict() -> None:
    session = _FakeSession(
        _response(200, {"errors": [{"message": "Object already exist"}], "data": None})
    )
    client = DirectorClient(session, "https://director.example.com/graphql", "t0ken")

    with pytest.raises(ConflictError, match="already exist"):
        client.execute("mutation { createFormation }")


def test_other_graphql_errors_raise_registry_request_error() -> None:
    session = _FakeSession(_response(200, {"errors": [{"message": "insufficient scopes"}]}))
    client = DirectorClient(session, "https://director.example.com/graphql", "t0ken")

    with pytest.raises(RegistryRequestError, match="insufficient scopes") as exc_info:
        client.execute("query { runtime }")
    assert isinstance(exc_info.value, TransientNetworkError)


def test_http_failure_raises_registry_request_error() -> None:
    session = _FakeSession(_response(502, {"message": "bad gateway"}))
    client = DirectorClient(session, "https://director.example.com/graphql", "t0ken")

    with pytest.raises(RegistryRequestError, match="Director request failed"):
        client.execute("query { runtime }")


def test_missing_data_object_raises_registry_request_error() -> None:
    session = _FakeSession(_response(200, {"data": None}))
    client = DirectorClient(session, "https://director.example.com/graphql", "t0ken")

    with pytest.raises(RegistryRequestError, match="no data object"):
        client.execute("query { runtime }")
