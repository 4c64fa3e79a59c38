"""Inbound request models, one per UI operation.

Pull request ids arrive as opaque JSON tokens and are decoded here, so the
adapter only ever sees ``PullRequestId`` values.
"""

from typing import Any, Dict, List

from pydantic import Field

from prbridge.models.base import CanonicalModel
from prbridge.models.identity import PullRequestIdField


class FetchBoardsRequest(CanonicalModel):
    pass


class FetchCardsRequest(CanonicalModel):
    board_id: str | None = None


class CreateCardRequest(CanonicalModel):
    repo_name: str
    title: str
    description: str = ""
    assignee: Dict[str, Any] | None = None


class AssignableUsersRequest(CanonicalModel):
    board_id: str


class RepoInfoRequest(CanonicalModel):
    remote: str


class CreatePullRequestRequest(CanonicalModel):
    remote: str
    title: str
    description: str = ""
    base_ref_name: str
    head_ref_name: str


class PullRequestRequest(CanonicalModel):
    """Any operation that needs only the pull request id."""

    pull_request_id: PullRequestIdField


class FetchPullRequestRequest(PullRequestRequest):
    force: bool = False


class CreateCommentRequest(PullRequestRequest):
    text: str


class CommentReplyRequest(PullRequestRequest):
    # discussion id the reply belongs to
    comment_id: str
    text: str


class DeleteCommentRequest(PullRequestRequest):
    # note gid, e.g. gid://gitlab/DiffNote/1
    id: str


class InlineCommentRequest(PullRequestRequest):
    text: str
    file_path: str
    start_line: int | None = None
    end_line: int | None = None
    position: int | None = None
    left_sha: str | None = None
    right_sha: str | None = None
    sha: str | None = None


class SubmitReviewRequest(PullRequestRequest):
    text: str = ""
    # validated by the adapter against ReviewEventType; empty means COMMENT
    event_type: str = ""


class OnOffRequest(PullRequestRequest):
    on_off: bool


class MarkToDoDoneRequest(CanonicalModel):
    id: str


class ToggleMilestoneRequest(PullRequestRequest):
    milestone_id: str | None = None


class SetLabelsRequest(PullRequestRequest):
    label_ids: List[str] = Field(default_factory=list)
    on_off: bool = True


class ToggleReactionRequest(PullRequestRequest):
    subject_id: str | None = None
    content: str
    on_off: bool
    # award id, required when removing
    id: str | None = None


class ToggleApprovalRequest(PullRequestRequest):
    approve: bool


class MergePullRequestRequest(PullRequestRequest):
    message: str = ""
    delete_source_branch: bool | None = None
    squash_commits: bool | None = None


class MyPullRequestsRequest(CanonicalModel):
    queries: List[str]
    owner: str | None = None
    repo: str | None = None
    is_open: bool = False


class CommentsForPathRequest(CanonicalModel):
    """Inline comments for an open editor file."""

    file_path: str
    repo_path: str
