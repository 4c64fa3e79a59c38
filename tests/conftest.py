"""Shared fixtures: a routing fake for ``requests.Session.request`` and GitLab payloads."""

import json
from typing import Any, Callable, Dict, List
from unittest.mock import Mock, patch

import pytest

from prbridge.adapters.gitlab import GitLabAdapter
from prbridge.config import CacheConfig, GitLabConfig
from prbridge.connection import ProviderConnection

BASE_URL = "https://gitlab.example.com/api/v4"
GRAPHQL_URL = "https://gitlab.example.com/api/graphql"

PR_GID = "gid://gitlab/MergeRequest/101"
PR_FULL = "group/repo!5"
PR_TOKEN = json.dumps({"id": PR_GID, "full": PR_FULL})
MR_PATH = "/projects/group%2Frepo/merge_requests/5"
PROJECT_PATH = "/projects/group%2Frepo"


def make_response(
    body: Any = None,
    status: int = 200,
    headers: Dict[str, str] | None = None,
    text: str | None = None,
) -> Mock:
    """Mock ``requests.Response`` with the attributes the transport reads."""
    resp = Mock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.reason = "OK" if status < 400 else "Error"
    if body is None:
        resp.json.side_effect = ValueError("No JSON")
        resp.content = b""
        resp.text = text or ""
    else:
        resp.json.return_value = body
        resp.content = json.dumps(body).encode()
        resp.text = text if text is not None else json.dumps(body)
    return resp


class FakeGitLab:
    """Answers ``session.request(method, url, ...)`` from registered routes.

    REST routes match method and exact path (query included) below BASE_URL;
    GraphQL routes match the operation name in the posted query. Unrouted
    calls fail the test.
    """

    def __init__(self) -> None:
        self.rest: Dict[tuple[str, str], Callable[[], Mock]] = {}
        self.graphql: Dict[str, Callable[[], Mock]] = {}
        self.calls: List[Dict[str, Any]] = []

    def add(self, method: str, path: str, body: Any = None, status: int = 200, headers: Dict[str, str] | None = None) -> None:
        self.rest[(method, path)] = lambda: make_response(body, status, headers)

    def add_sequence(self, method: str, path: str, responses: List[Mock]) -> None:
        """Answer successive calls with ``responses`` in order."""
        remaining = list(responses)
        self.rest[(method, path)] = lambda: remaining.pop(0)

    def add_error(self, method: str, path: str, exc: Exception) -> None:
        def raise_exc() -> Mock:
            raise exc

        self.rest[(method, path)] = raise_exc

    def add_graphql(self, operation: str, data: Any = None, errors: List[Dict[str, Any]] | None = None, status: int = 200) -> None:
        payload: Dict[str, Any] = {"data": data}
        if errors:
            payload["errors"] = errors
        self.graphql[operation] = lambda: make_response(payload, status)

    def __call__(self, method: str, url: str, json: Any = None, headers: Any = None, timeout: Any = None) -> Mock:
        self.calls.append({"method": method, "url": url, "json": json, "headers": headers})
        if url == GRAPHQL_URL:
            query = (json or {}).get("query", "")
            for operation, respond in self.graphql.items():
                if f"{operation}(" in query:
                    return respond()
            raise AssertionError(f"Unrouted GraphQL operation: {query[:60]!r}")
        path = url[len(BASE_URL):] if url.startswith(BASE_URL) else url
        respond = self.rest.get((method, path))
        if respond is None:
            raise AssertionError(f"Unrouted request: {method} {path}")
        return respond()

    def count(self, method: str, path: str) -> int:
        return sum(1 for c in self.calls if c["method"] == method and c["url"] == BASE_URL + path)

    def graphql_count(self, operation: str) -> int:
        return sum(
            1 for c in self.calls if c["url"] == GRAPHQL_URL and f"{operation}(" in (c["json"] or {}).get("query", "")
        )


@pytest.fixture
def fake() -> FakeGitLab:
    gitlab = FakeGitLab()
    gitlab.add("GET", "/user", {"id": 7, "username": "me", "name": "Me"})
    return gitlab


@pytest.fixture
def connection() -> ProviderConnection:
    return ProviderConnection(BASE_URL, "test-token", provider_id="gitlab*example")


def make_adapter(connection: ProviderConnection, **kwargs: Any) -> GitLabAdapter:
    return GitLabAdapter(
        connection,
        config=GitLabConfig(api_url=BASE_URL, remote_domain="gitlab.example.com", provider_id="gitlab*example"),
        cache_config=CacheConfig(comments_refresh_minutes=30),
        **kwargs,
    )


@pytest.fixture
def adapter(connection: ProviderConnection, fake: FakeGitLab):
    gitlab = make_adapter(connection)
    with patch.object(gitlab.transport._session, "request", side_effect=fake):
        yield gitlab


def gql_note(note_id: str, body: str, created_at: str, discussion_id: str, **extra: Any) -> Dict[str, Any]:
    note = {
        "id": note_id,
        "author": {"name": "Alice", "username": "alice", "avatarUrl": "https://a/avatar.png"},
        "body": body,
        "bodyHtml": f"<p>{body}</p>",
        "createdAt": created_at,
        "updatedAt": created_at,
        "discussion": {"id": discussion_id, "replyId": discussion_id, "createdAt": created_at},
        "position": None,
        "resolvable": False,
        "resolved": False,
        "system": False,
    }
    note.update(extra)
    return note


def gql_discussion(discussion_id: str, created_at: str, notes: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        "id": discussion_id,
        "createdAt": created_at,
        "replyId": discussion_id,
        "resolvable": False,
        "resolved": False,
        "notes": {"nodes": notes},
    }


def pull_request_data(discussions: List[Dict[str, Any]] | None = None, merged_at: str | None = None) -> Dict[str, Any]:
    """``data`` of the GetPullRequest query for group/repo!5."""
    return {
        "currentUser": {"id": "gid://gitlab/User/7", "name": "Me", "username": "me"},
        "project": {
            "name": "repo",
            "mergeRequest": {
                "id": PR_GID,
                "iid": "5",
                "title": "Add feature",
                "description": "Adds the feature",
                "webUrl": "https://gitlab.example.com/group/repo/-/merge_requests/5",
                "state": "opened",
                "createdAt": "2024-01-01T10:00:00Z",
                "mergedAt": merged_at,
                "sourceBranch": "feature",
                "targetBranch": "main",
                "workInProgress": False,
                "reference": "!5",
                "projectId": 42,
                "author": {"name": "Alice", "username": "alice", "avatarUrl": "https://a/avatar.png"},
                "diffRefs": {"baseSha": "base-sha", "headSha": "head-sha", "startSha": "start-sha"},
                "commitCount": 2,
                "sourceProject": {
                    "name": "repo",
                    "webUrl": "https://gitlab.example.com/group/repo",
                    "fullPath": "group/repo",
                },
                "upvotes": 1,
                "downvotes": 0,
                "labels": {"nodes": [{"id": "gid://gitlab/Label/1", "title": "bug", "color": "#f00"}]},
                "discussions": {"nodes": discussions or []},
            },
        },
    }


def route_pull_request(
    fake: FakeGitLab,
    data: Dict[str, Any] | None = None,
    awards: List[Dict[str, Any]] | None = None,
    project_events: List[Dict[str, Any]] | None = None,
    label_events: List[Dict[str, Any]] | None = None,
    milestone_events: List[Dict[str, Any]] | None = None,
) -> None:
    """Register every call of a pull request detail fetch."""
    fake.add_graphql("GetPullRequest", data or pull_request_data())
    fake.add("GET", f"{MR_PATH}/award_emoji", awards or [])
    fake.add("GET", f"{PROJECT_PATH}/events", project_events or [])
    fake.add("GET", f"{MR_PATH}/resource_label_events", label_events or [])
    fake.add("GET", f"{MR_PATH}/resource_milestone_events", milestone_events or [])
