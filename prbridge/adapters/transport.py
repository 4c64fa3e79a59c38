"""Authenticated REST and GraphQL calls against one GitLab instance.

REST calls go to ``base_url + path`` and return the parsed body together with
the response headers (pagination, rate limits). GraphQL operations go to the
``/graphql`` endpoint next to the versioned REST root and return ``data``.
Blocking ``requests`` calls run in a worker thread so callers can await them
and fan out with ``asyncio.gather``.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping

import requests
from pydantic import BaseModel

from prbridge.adapters.errors import classify
from prbridge.connection import ProviderConnection
from prbridge.exceptions import (
    ProviderError,
    SuppressedProviderError,
    SuppressedReason,
    TransportError,
)

LOG = logging.getLogger("prbridge.adapters.transport")

# Warn when fewer than this many REST requests remain in the window
RATE_LIMIT_WARN_REMAINING = 50


class ApiResponse:
    """Parsed body plus the raw response metadata."""

    def __init__(self, body: Any, headers: Mapping[str, str], status_code: int) -> None:
        self.body = body
        self.headers = headers
        self.status_code = status_code


class RateLimit(BaseModel):
    """GitLab ``RateLimit-*`` headers of the last REST response."""

    limit: int
    remaining: int
    observed: int | None = None
    reset: int | None = None


def _int_header(headers: Mapping[str, str], name: str) -> int | None:
    value = headers.get(name)
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _error_message(resp: requests.Response) -> tuple[str, Any]:
    """Best message and parsed body of an error response."""
    msg = resp.text or resp.reason or str(resp.status_code)
    body: Any = None
    try:
        body = resp.json()
    except ValueError:
        return msg, body
    if isinstance(body, dict):
        found = body.get("message") or body.get("error")
        if found:
            msg = found if isinstance(found, str) else str(found)
    return msg, body


class GraphQLClient:
    """Posts GraphQL operations with the bearer token captured at creation."""

    def __init__(self, session: requests.Session, endpoint: str, access_token: str, timeout: int) -> None:
        self.endpoint = endpoint
        self._session = session
        self._timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Content-Type": "application/json",
        }

    def request(self, query: str, variables: Dict[str, Any] | None = None) -> Dict[str, Any]:
        """Run one operation; return ``data`` or raise TransportError."""
        try:
            resp = self._session.request(
                "POST",
                self.endpoint,
                json={"query": query, "variables": variables or {}},
                headers=self._headers,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise TransportError(str(e), context={"endpoint": self.endpoint}) from e
        if resp.status_code >= 400:
            _, body = _error_message(resp)
            raise TransportError(
                f"GraphQL Error (Code: {resp.status_code})",
                status_code=resp.status_code,
                response=body,
                context={"endpoint": self.endpoint},
            )
        try:
            payload = resp.json() or {}
        except ValueError as e:
            raise TransportError(
                f"GraphQL Error: invalid JSON response (Code: {resp.status_code})",
                status_code=resp.status_code,
                response=resp.text,
                context={"endpoint": self.endpoint},
            ) from e
        errors = payload.get("errors")
        if errors:
            messages = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            raise TransportError(
                f"GraphQL Error: {messages}",
                status_code=resp.status_code,
                response=payload,
                context={"endpoint": self.endpoint},
            )
        return payload.get("data") or {}


class GitLabTransport:
    """REST/GraphQL transport bound to one connection."""

    def __init__(
        self,
        connection: ProviderConnection,
        timeout: int = 30,
        session: requests.Session | None = None,
    ) -> None:
        self._connection = connection
        self._timeout = timeout
        self._session = session or requests.Session()
        self._client: GraphQLClient | None = None
        self.rate_limit: RateLimit | None = None

    @property
    def base_url(self) -> str:
        return self._connection.base_url

    @property
    def graphql_url(self) -> str:
        return f"{self.base_url.replace('/v4', '')}/graphql"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._require_token()}",
            "Content-Type": "application/json",
        }

    def _require_token(self) -> str:
        token = self._connection.access_token
        if not token:
            raise ProviderError("Could not get a GitLab personal access token")
        return token

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}{path}" if path.startswith("/") else f"{self.base_url}/{path}"

    def _record_rate_limit(self, headers: Mapping[str, str]) -> None:
        limit = _int_header(headers, "RateLimit-Limit")
        remaining = _int_header(headers, "RateLimit-Remaining")
        if limit is None or remaining is None:
            return
        self.rate_limit = RateLimit(
            limit=limit,
            remaining=remaining,
            observed=_int_header(headers, "RateLimit-Observed"),
            reset=_int_header(headers, "RateLimit-Reset"),
        )
        if remaining < RATE_LIMIT_WARN_REMAINING:
            LOG.warning("GitLab rate limit low: %s of %s remaining", remaining, limit)
        else:
            LOG.debug("GitLab rate limit: %s of %s remaining", remaining, limit)

    def _send(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: Dict[str, str] | None = None,
        raw: bool = False,
    ) -> ApiResponse:
        url = self._url(path)
        merged = {**self.headers, **(headers or {})}
        try:
            resp = self._session.request(method, url, json=json, headers=merged, timeout=self._timeout)
        except requests.RequestException as e:
            raise TransportError(str(e), context={"method": method, "endpoint": path}) from e
        if resp.status_code >= 400:
            msg, body = _error_message(resp)
            raise TransportError(
                f"{resp.status_code}: {msg}",
                status_code=resp.status_code,
                response=body,
                context={"method": method, "endpoint": path},
            )
        self._record_rate_limit(resp.headers)
        if raw:
            body = resp.text
        else:
            try:
                body = resp.json() if resp.content else None
            except ValueError:
                body = resp.text
        return ApiResponse(body, resp.headers, resp.status_code)

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        headers: Dict[str, str] | None = None,
        raw: bool = False,
    ) -> ApiResponse:
        return await asyncio.to_thread(self._send, method, path, json, headers, raw)

    async def get(self, path: str) -> ApiResponse:
        return await self.request("GET", path)

    async def post(self, path: str, body: Any, headers: Dict[str, str] | None = None) -> ApiResponse:
        return await self.request("POST", path, json=body, headers=headers)

    async def put(self, path: str, body: Any) -> ApiResponse:
        return await self.request("PUT", path, json=body)

    async def delete(self, path: str, raw: bool = False) -> ApiResponse:
        """DELETE; with ``raw`` the body is the response text (GitLab sends none)."""
        return await self.request("DELETE", path, raw=raw)

    def client(self) -> GraphQLClient:
        """GraphQL client, created on first use with the current token."""
        token = self._require_token()
        if self._client is None:
            self._client = GraphQLClient(self._session, self.graphql_url, token, self._timeout)
        return self._client

    def discard_client(self) -> None:
        """Drop the GraphQL client so the next call picks up a refreshed token."""
        self._client = None

    async def query(self, query: str, variables: Dict[str, Any] | None = None) -> Dict[str, Any]:
        """Run a GraphQL query, classifying failures.

        Known failures (network, connection, bad token) are raised as
        SuppressedProviderError; connection and token failures also store a
        token error on the connection. Anything else propagates unchanged.
        While a token error is stored, queries fail fast without a request.
        """
        if self._connection.token_error is not None:
            self.discard_client()
            raise SuppressedProviderError(SuppressedReason.ACCESS_TOKEN_INVALID)
        return await self._run_graphql(query, variables)

    async def mutate(self, mutation: str, variables: Dict[str, Any] | None = None) -> Dict[str, Any]:
        """Run a GraphQL mutation, classifying failures like ``query``.

        A stored token error does not short-circuit mutations: a user action
        always reaches the network and is classified on its own answer.
        """
        return await self._run_graphql(mutation, variables)

    async def _run_graphql(self, query: str, variables: Dict[str, Any] | None) -> Dict[str, Any]:
        client = self.client()
        try:
            return await asyncio.to_thread(client.request, query, variables)
        except ProviderError as e:
            LOG.warning("GitLab query caught: %s", e)
            reason = classify(e)
            if reason is None:
                raise
            if reason is not SuppressedReason.NETWORK_ERROR:
                self._connection.set_token_error(
                    e, is_connection_error=reason is SuppressedReason.CONNECTION_ERROR
                )
                self.discard_client()
            raise SuppressedProviderError(reason, e) from e
