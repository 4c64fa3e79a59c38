"""Tests for request dispatch and result/error envelopes."""

import asyncio
import inspect
from unittest.mock import patch

from conftest import MR_PATH, PR_TOKEN, FakeGitLab, make_response, route_pull_request
from prbridge.adapters.gitlab import GitLabAdapter
from prbridge.router import ROUTES, dispatch


class TestRoutes:
    """The route table."""

    def test_every_route_exists_on_adapter(self) -> None:
        """Each route names a coroutine method of the adapter."""
        for method, (_, attr) in ROUTES.items():
            assert inspect.iscoroutinefunction(getattr(GitLabAdapter, attr)), method


class TestDispatch:
    """dispatch wraps results and errors."""

    def test_result_is_camel_case(self, adapter: GitLabAdapter, fake: FakeGitLab) -> None:
        """Results are serialized with camelCase keys."""
        route_pull_request(fake)
        output = asyncio.run(dispatch(adapter, "getPullRequest", {"pullRequestId": PR_TOKEN}))
        assert output["result"]["pullRequest"]["references"]["full"] == "group/repo!5"

    def test_boolean_result(self, adapter: GitLabAdapter) -> None:
        """Plain values pass through."""
        output = asyncio.run(dispatch(adapter, "getPendingReview", {"pullRequestId": PR_TOKEN}))
        assert output == {"result": False}

    def test_unknown_method(self, adapter: GitLabAdapter) -> None:
        """Unknown methods are UNKNOWN errors."""
        output = asyncio.run(dispatch(adapter, "noSuchThing", {}))
        assert output["error"]["type"] == "UNKNOWN"

    def test_invalid_id_token(self, adapter: GitLabAdapter, fake: FakeGitLab) -> None:
        """An undecodable id is rejected before any call."""
        output = asyncio.run(dispatch(adapter, "getPullRequest", {"pullRequestId": "nope"}))
        assert output["error"]["type"] == "UNKNOWN"
        assert fake.calls == []

    def test_invalid_event_type(self, adapter: GitLabAdapter, fake: FakeGitLab) -> None:
        """An unknown review event type is UNKNOWN."""
        output = asyncio.run(dispatch(adapter, "submitReview", {"pullRequestId": PR_TOKEN, "eventType": "BOGUS"}))
        assert output["error"] == {"type": "UNKNOWN", "message": "Invalid eventType: BOGUS"}
        assert fake.calls == []

    def test_provider_error(self, adapter: GitLabAdapter, fake: FakeGitLab) -> None:
        """Provider failures become PROVIDER errors."""
        fake.add("POST", f"{MR_PATH}/todo", {"message": "boom"}, status=500)
        output = asyncio.run(dispatch(adapter, "createToDo", {"pullRequestId": PR_TOKEN}))
        assert output["error"]["type"] == "PROVIDER"
        assert "boom" in output["error"]["message"]

    def test_rejected_mutation_is_provider_error(self, adapter: GitLabAdapter, fake: FakeGitLab) -> None:
        """A mutation payload without its node reports the payload errors."""
        fake.add_graphql("CreateNote", {"createNote": {"note": None, "errors": ["Note can't be blank"]}})
        output = asyncio.run(
            dispatch(adapter, "createPullRequestComment", {"pullRequestId": PR_TOKEN, "text": ""})
        )
        assert output["error"] == {"type": "PROVIDER", "message": "Note can't be blank"}

    def test_rejected_labels_without_errors(self, adapter: GitLabAdapter, fake: FakeGitLab) -> None:
        """An empty mutation payload still yields an error object."""
        fake.add_graphql("MergeRequestSetLabels", {"mergeRequestSetLabels": None})
        output = asyncio.run(
            dispatch(adapter, "setLabelOnPullRequest", {"pullRequestId": PR_TOKEN, "labelIds": ["gid://gitlab/Label/1"]})
        )
        assert output["error"]["type"] == "PROVIDER"
        assert "mergeRequestSetLabels" in output["error"]["message"]

    def test_non_json_graphql_answer(self, adapter: GitLabAdapter, fake: FakeGitLab) -> None:
        """An HTML page in place of GraphQL JSON ends as an error, not a raw exception."""
        fake.graphql["GetPullRequest"] = lambda: make_response(None, text="<html>proxy</html>")
        output = asyncio.run(dispatch(adapter, "getPullRequest", {"pullRequestId": PR_TOKEN}))
        assert output["result"]["error"]["type"] == "PROVIDER"
        assert "invalid JSON" in output["result"]["error"]["message"]

        fake.graphql["CreateNote"] = lambda: make_response(None, text="<html>proxy</html>")
        output = asyncio.run(
            dispatch(adapter, "createPullRequestComment", {"pullRequestId": PR_TOKEN, "text": "hi"})
        )
        assert output["error"]["type"] == "PROVIDER"

    def test_unexpected_exception_is_provider_error(self, adapter: GitLabAdapter) -> None:
        """Failures outside the provider error hierarchy are still reported."""
        with patch.object(GitLabAdapter, "create_todo", side_effect=RuntimeError("kaput")):
            output = asyncio.run(dispatch(adapter, "createToDo", {"pullRequestId": PR_TOKEN}))
        assert output == {"error": {"type": "PROVIDER", "message": "kaput"}}
