"""Composite merge request identity and its opaque token form.

A merge request is addressed by its numeric (or global) id plus the fully
qualified reference ``<project full path>!<iid>``. Outside the adapter the
pair travels as a JSON string ``{"id": ..., "full": ...}``; inside it is
always a ``PullRequestId``.
"""

import json
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, PlainSerializer

from prbridge.exceptions import InvalidPullRequestIdError

REFERENCE_SEPARATOR = "!"


class PullRequestId(BaseModel):
    """Decoded merge request identity."""

    model_config = ConfigDict(frozen=True)

    numeric_id: str
    project_full_path: str
    iid: str

    @property
    def full_reference(self) -> str:
        """``<project full path>!<iid>``, as the REST API reports it."""
        return f"{self.project_full_path}{REFERENCE_SEPARATOR}{self.iid}"

    def encode(self) -> str:
        return encode_pull_request_id(self.numeric_id, self.full_reference)

    @classmethod
    def from_reference(cls, numeric_id: str | int, full_reference: str) -> "PullRequestId":
        """Build from a numeric id and a ``path!iid`` reference."""
        if full_reference.count(REFERENCE_SEPARATOR) != 1:
            raise InvalidPullRequestIdError(f"Invalid merge request reference: {full_reference!r}")
        project_full_path, _, iid = full_reference.partition(REFERENCE_SEPARATOR)
        if not project_full_path or not iid:
            raise InvalidPullRequestIdError(f"Invalid merge request reference: {full_reference!r}")
        return cls(numeric_id=str(numeric_id), project_full_path=project_full_path, iid=iid)


def encode_pull_request_id(numeric_id: str | int, full_reference: str) -> str:
    """Serialize the identity into the opaque token handed to callers."""
    return json.dumps({"id": str(numeric_id), "full": full_reference})


def decode_pull_request_id(token: str) -> PullRequestId:
    """Parse an opaque token back into a ``PullRequestId``.

    Raises InvalidPullRequestIdError when the token is not a JSON object with
    ``id`` and ``full`` keys or the reference lacks the ``!`` separator.
    """
    try:
        data = json.loads(token)
    except (TypeError, ValueError) as e:
        raise InvalidPullRequestIdError(f"Invalid pull request id: {token!r}") from e
    if not isinstance(data, dict) or "full" not in data or "id" not in data:
        raise InvalidPullRequestIdError(f"Invalid pull request id: {token!r}")
    return PullRequestId.from_reference(data["id"], str(data["full"]))


def _decode_if_token(value: Any) -> Any:
    if isinstance(value, str):
        return decode_pull_request_id(value)
    return value


# Request/response field: accepts the opaque token, serializes back to it
PullRequestIdField = Annotated[
    PullRequestId,
    BeforeValidator(_decode_if_token),
    PlainSerializer(lambda v: v.encode(), return_type=str),
]
