"""Change notifications sent to the hosting session."""

from typing import Literal

from pydantic import BaseModel


class PullRequestCommentsChanged(BaseModel):
    """Server-visible state of a pull request changed; the UI should re-fetch."""

    type: Literal["pullRequestCommentsChanged"] = "pullRequestCommentsChanged"
    pull_request_id: str
    file_path: str | None = None
    comment_id: str | None = None


class DocumentMarkersChanged(BaseModel):
    """Comments for a file are ready; the editor should re-query its markers."""

    type: Literal["documentMarkersChanged"] = "documentMarkersChanged"
    uri: str
    reason: str = "codemarks"


Notification = PullRequestCommentsChanged | DocumentMarkersChanged
