"""Classify provider failures into known, non-alerting categories."""

import re
from typing import Any

import requests

from prbridge.exceptions import SuppressedReason

# Message fragments of transient network failures (Node and Python spellings)
NETWORK_ERRORS = [
    "ENOTFOUND",
    "ETIMEDOUT",
    "EAI_AGAIN",
    "ECONNRESET",
    "ECONNREFUSED",
    "ENETDOWN",
    "ENETUNREACH",
    "socket disconnected before secure",
    "socket hang up",
    "Connection reset by peer",
    "Connection refused",
    "Name or service not known",
    "Temporary failure in name resolution",
    "Network is unreachable",
    "Read timed out",
]

_NETWORK_RE = re.compile("|".join(re.escape(e) for e in NETWORK_ERRORS))
_GRAPHQL_NOT_FOUND_RE = re.compile(r"GraphQL Error \(Code: 404\)")


def _message(exc: BaseException) -> str:
    return getattr(exc, "message", None) or str(exc)


def _is_forbidden(response: Any) -> bool:
    if not isinstance(response, dict):
        return False
    errors = response.get("errors")
    if not isinstance(errors, list):
        return False
    return any(isinstance(e, dict) and e.get("type") == "FORBIDDEN" for e in errors)


def classify(exc: BaseException) -> SuppressedReason | None:
    """Return the suppressed category of a failure, or None when unexpected.

    - network: DNS/reset/timeout messages or a requests connection/timeout error
    - connection: a GraphQL call answered 404
    - access token invalid: 401, "Bad credentials", or a FORBIDDEN GraphQL error
    """
    message = _message(exc)
    cause = exc.__cause__
    if _NETWORK_RE.search(message) or isinstance(
        cause, (requests.ConnectionError, requests.Timeout)
    ):
        return SuppressedReason.NETWORK_ERROR
    if _GRAPHQL_NOT_FOUND_RE.search(message):
        return SuppressedReason.CONNECTION_ERROR
    response = getattr(exc, "response", None)
    if getattr(exc, "status_code", None) == 401:
        return SuppressedReason.ACCESS_TOKEN_INVALID
    if isinstance(response, dict) and response.get("message") == "Bad credentials":
        return SuppressedReason.ACCESS_TOKEN_INVALID
    if _is_forbidden(response):
        return SuppressedReason.ACCESS_TOKEN_INVALID
    return None
