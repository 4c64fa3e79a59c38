"""Tests for the REST/GraphQL transport (mocked session)."""

import asyncio
import logging
from unittest.mock import patch

import pytest
import requests

from conftest import BASE_URL, GRAPHQL_URL, make_response
from prbridge.adapters.transport import GitLabTransport
from prbridge.connection import ProviderConnection
from prbridge.exceptions import ProviderError, SuppressedProviderError, SuppressedReason, TransportError


@pytest.fixture
def connection() -> ProviderConnection:
    return ProviderConnection(BASE_URL + "/", "tok")


@pytest.fixture
def transport(connection: ProviderConnection) -> GitLabTransport:
    return GitLabTransport(connection, timeout=5)


class TestRest:
    """REST calls: URL, headers, body parsing and errors."""

    def test_get_sends_bearer_token(self, transport: GitLabTransport) -> None:
        """GET goes to base_url + path with the bearer token."""
        with patch.object(transport._session, "request", return_value=make_response({"id": 1})) as req:
            response = asyncio.run(transport.get("/user"))

        assert response.body == {"id": 1}
        method, url = req.call_args[0]
        assert method == "GET"
        assert url == f"{BASE_URL}/user"
        assert req.call_args.kwargs["headers"]["Authorization"] == "Bearer tok"
        assert req.call_args.kwargs["timeout"] == 5

    def test_error_status_raises_with_message(self, transport: GitLabTransport) -> None:
        """An error status raises TransportError carrying status and API message."""
        resp = make_response({"message": "403 Forbidden"}, status=403)
        with patch.object(transport._session, "request", return_value=resp):
            with pytest.raises(TransportError) as exc_info:
                asyncio.run(transport.get("/projects/1"))

        assert exc_info.value.status_code == 403
        assert "403 Forbidden" in exc_info.value.message
        assert exc_info.value.context["endpoint"] == "/projects/1"

    def test_network_failure_raises_transport_error(self, transport: GitLabTransport) -> None:
        """requests exceptions are wrapped in TransportError."""
        with patch.object(transport._session, "request", side_effect=requests.ConnectionError("ECONNRESET")):
            with pytest.raises(TransportError):
                asyncio.run(transport.get("/user"))

    def test_raw_delete_returns_text(self, transport: GitLabTransport) -> None:
        """raw responses are returned as text, even when empty."""
        with patch.object(transport._session, "request", return_value=make_response(None, status=204)):
            response = asyncio.run(transport.delete("/x", raw=True))
        assert response.body == ""

    def test_missing_token(self) -> None:
        """Calls without a token fail before reaching the network."""
        transport = GitLabTransport(ProviderConnection(BASE_URL, None))
        with patch.object(transport._session, "request") as req:
            with pytest.raises(ProviderError):
                asyncio.run(transport.get("/user"))
        req.assert_not_called()

    def test_rate_limit_recorded(self, transport: GitLabTransport, caplog: pytest.LogCaptureFixture) -> None:
        """RateLimit headers are kept; a low remainder is logged as a warning."""
        headers = {"RateLimit-Limit": "600", "RateLimit-Remaining": "10", "RateLimit-Reset": "1700000000"}
        with patch.object(transport._session, "request", return_value=make_response([], headers=headers)):
            with caplog.at_level(logging.WARNING, logger="prbridge.adapters.transport"):
                asyncio.run(transport.get("/projects"))

        assert transport.rate_limit.limit == 600
        assert transport.rate_limit.remaining == 10
        assert transport.rate_limit.reset == 1700000000
        assert "rate limit low" in caplog.text


class TestGraphQL:
    """GraphQL calls and failure classification."""

    def test_endpoint_next_to_rest_root(self, transport: GitLabTransport) -> None:
        """The GraphQL endpoint drops the /v4 segment."""
        assert transport.graphql_url == GRAPHQL_URL

    def test_query_returns_data(self, transport: GitLabTransport) -> None:
        """data is returned; variables are posted with the query."""
        with patch.object(transport._session, "request", return_value=make_response({"data": {"x": 1}})) as req:
            data = asyncio.run(transport.query("query Q { x }", {"a": 1}))

        assert data == {"x": 1}
        assert req.call_args[0] == ("POST", GRAPHQL_URL)
        assert req.call_args.kwargs["json"] == {"query": "query Q { x }", "variables": {"a": 1}}

    def test_error_list_is_unexpected(self, transport: GitLabTransport, connection: ProviderConnection) -> None:
        """An unclassified error list propagates unchanged and stores no token error."""
        resp = make_response({"data": None, "errors": [{"message": "totally unexpected"}]})
        with patch.object(transport._session, "request", return_value=resp):
            with pytest.raises(TransportError) as exc_info:
                asyncio.run(transport.query("query Q { x }"))

        assert not isinstance(exc_info.value, SuppressedProviderError)
        assert exc_info.value.message == "GraphQL Error: totally unexpected"
        assert connection.token_error is None

    def test_404_is_connection_error(self, transport: GitLabTransport, connection: ProviderConnection) -> None:
        """A 404 from the endpoint is suppressed as a connection error."""
        with patch.object(transport._session, "request", return_value=make_response({}, status=404)):
            with pytest.raises(SuppressedProviderError) as exc_info:
                asyncio.run(transport.query("query Q { x }"))

        assert exc_info.value.reason is SuppressedReason.CONNECTION_ERROR
        assert "GraphQL Error (Code: 404)" in exc_info.value.message
        assert connection.token_error.is_connection_error is True

    def test_network_error_stores_no_token_error(self, transport: GitLabTransport, connection: ProviderConnection) -> None:
        """Network failures are suppressed without touching the credential state."""
        with patch.object(transport._session, "request", side_effect=requests.ConnectionError("ECONNRESET")):
            with pytest.raises(SuppressedProviderError) as exc_info:
                asyncio.run(transport.query("query Q { x }"))

        assert exc_info.value.reason is SuppressedReason.NETWORK_ERROR
        assert connection.token_error is None

    def test_token_error_fails_fast(self, transport: GitLabTransport, connection: ProviderConnection) -> None:
        """With a stored token error queries fail without a request."""
        connection.set_token_error(Exception("401"), is_connection_error=False)
        with patch.object(transport._session, "request") as req:
            with pytest.raises(SuppressedProviderError) as exc_info:
                asyncio.run(transport.query("query Q { x }"))

        assert exc_info.value.reason is SuppressedReason.ACCESS_TOKEN_INVALID
        req.assert_not_called()

    def test_non_json_answer_is_transport_error(self, transport: GitLabTransport, connection: ProviderConnection) -> None:
        """A 200 that is not JSON raises TransportError with the page text."""
        resp = make_response(None, text="<html>proxy login</html>")
        with patch.object(transport._session, "request", return_value=resp):
            with pytest.raises(TransportError) as exc_info:
                asyncio.run(transport.query("query Q { x }"))

        assert not isinstance(exc_info.value, SuppressedProviderError)
        assert exc_info.value.message == "GraphQL Error: invalid JSON response (Code: 200)"
        assert exc_info.value.response == "<html>proxy login</html>"
        assert connection.token_error is None

    def test_mutation_reaches_network_with_token_error(
        self, transport: GitLabTransport, connection: ProviderConnection
    ) -> None:
        """Mutations are sent even while a token error is stored."""
        connection.set_token_error(Exception("401"), is_connection_error=False)
        with patch.object(transport._session, "request", return_value=make_response({"data": {"m": 1}})) as req:
            data = asyncio.run(transport.mutate("mutation M { m }"))

        assert data == {"m": 1}
        req.assert_called_once()

    def test_mutation_failures_are_classified(self, transport: GitLabTransport, connection: ProviderConnection) -> None:
        """A 401 on a mutation is suppressed and stores a token error."""
        with patch.object(transport._session, "request", return_value=make_response({}, status=401)):
            with pytest.raises(SuppressedProviderError) as exc_info:
                asyncio.run(transport.mutate("mutation M { m }"))

        assert exc_info.value.reason is SuppressedReason.ACCESS_TOKEN_INVALID
        assert connection.token_error.is_connection_error is False

    def test_client_reused_until_discarded(self, transport: GitLabTransport, connection: ProviderConnection) -> None:
        """The GraphQL client is cached; discard_client picks up a new token."""
        first = transport.client()
        assert transport.client() is first

        connection.update_token("new")
        transport.discard_client()

        assert transport.client() is not first
        assert transport.client()._headers["Authorization"] == "Bearer new"
